"""Determinism utilities.

Scores are computed with Decimal arithmetic and rounded with
ROUND_HALF_EVEN so that re-running a pass over unchanged data writes
identical values, and so a replay against a second store can be compared
by hash.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, TypeVar

from .types import DECIMAL_PLACES, InputError

T = TypeVar("T")


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """Convert a value to Decimal with validation.

    Raises:
        InputError: If value cannot be converted or is not finite
    """
    if value is None:
        raise InputError(f"{name} is None")

    try:
        if isinstance(value, Decimal):
            d = value
        else:
            d = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InputError(f"Cannot convert {name}={value!r} to Decimal: {e}")

    if d.is_nan():
        raise InputError(f"{name} is NaN")
    if d.is_infinite():
        raise InputError(f"{name} is infinite")
    return d


def round_decimal(value: Decimal, places: int = DECIMAL_PLACES) -> Decimal:
    """Round a Decimal to specified places using ROUND_HALF_EVEN."""
    quantize_str = "1" if places <= 0 else "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_EVEN)


def safe_divide(
    numerator: Decimal,
    denominator: Decimal,
    default: Decimal = Decimal("0"),
) -> Decimal:
    """Divide two Decimals, returning default on a zero divisor."""
    if denominator == Decimal("0"):
        return default
    return numerator / denominator


def sort_by_id(items: Iterable[T], id_key: str = "id") -> List[T]:
    """Sort dict rows or objects by their id for deterministic processing order."""
    items_list = list(items)
    if not items_list:
        return items_list

    if isinstance(items_list[0], Mapping):
        return sorted(items_list, key=lambda x: x.get(id_key, 0))
    return sorted(items_list, key=lambda x: getattr(x, id_key, 0))


def _serialize_for_hash(obj: Any) -> Any:
    """Recursively serialize an object for hashing."""
    if isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, float):
        return repr(obj)
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {str(k): _serialize_for_hash(v) for k, v in sorted(obj.items(), key=lambda kv: str(kv[0]))}
    elif isinstance(obj, (list, tuple)):
        return [_serialize_for_hash(v) for v in obj]
    else:
        return obj


def compute_hash(data: Any) -> str:
    """Compute a deterministic SHA256 hash of a JSON-like structure."""
    serialized = _serialize_for_hash(data)
    canonical = json.dumps(serialized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


def compute_updates_hash(updates: Iterable[Any]) -> str:
    """Hash a set of (answer_id, correct, score) updates independent of order."""
    rows = []
    for u in updates:
        if isinstance(u, Mapping):
            rows.append((int(u["answer_id"]), int(u["correct"]), round_decimal(to_decimal(u["score"], "score"))))
        else:
            rows.append((int(u.answer_id), int(u.correct), round_decimal(to_decimal(u.score, "score"))))
    rows.sort(key=lambda r: r[0])
    return compute_hash([list(r) for r in rows])


__all__ = [
    "to_decimal",
    "round_decimal",
    "safe_divide",
    "sort_by_id",
    "compute_hash",
    "compute_updates_hash",
]
