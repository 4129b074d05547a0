"""Value normalization.

Turns the free-form labels users and admins type into canonical values that
can be compared for equality:

- time:      "2:03:12"      -> "7392"     (label "02:03:12")
- decimal:   "1.234,5"      -> "1234.5"
- mcm:       "7,23"         -> "723"      (label "7,23")
- football:  "1-1" + "twnv" -> "1-1 twnv"
- open:      "  Foo "       -> "Foo"

Margin-tolerant questions also need the neighbouring values a user is
credited with; ``build_variants`` produces those.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional, Union

from poolscore.shared.enums import DrawTag, ResultType

from .types import InputError, NormalizedValue

logger = logging.getLogger("poolscore.scoring.normalize")

Number = Union[int, float, str, Decimal]

_TIME_RE = re.compile(r"^(\d{1,3}):([0-5]\d):([0-5]\d)$")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_NON_NUMERIC_RE = re.compile(r"[^0-9.+\-]")
_WHITESPACE_RE = re.compile(r"\s+")

TIME_FALLBACK = NormalizedValue(value="0", label="00:00:00")


def _plain(d: Decimal) -> str:
    """Minimal dot-decimal string: no exponent, no trailing zeros."""
    if d == 0:
        return "0"
    s = format(d.normalize(), "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def _int_prefix(raw: str) -> int:
    m = _INT_PREFIX_RE.match(raw or "")
    return int(m.group(1)) if m else 0


# ─────────────────────────────────────────────────────────────────────────────
# Per-type normalizers
# ─────────────────────────────────────────────────────────────────────────────


def normalize_time(label: Optional[str]) -> NormalizedValue:
    """Parse ``H:MM:SS`` (1-3 digit hours) into total seconds.

    Malformed input falls back to ``0`` / ``00:00:00``.
    """
    raw = (label or "").strip()
    m = _TIME_RE.match(raw)
    if not m:
        if raw:
            logger.debug({"normalize": "time_fallback", "label": raw})
        return TIME_FALLBACK
    h, mi, s = (int(g) for g in m.groups())
    return NormalizedValue(
        value=str(h * 3600 + mi * 60 + s),
        label=f"{h:02d}:{mi:02d}:{s:02d}",
    )


def parse_decimal(label: Optional[str]) -> Optional[Decimal]:
    """Parse a localized number; the rightmost of ``.``/``,`` is the decimal mark.

    A separator that appears more than once (and is the only one present) is
    read as a thousands separator. Returns None when unparseable.
    """
    raw = _WHITESPACE_RE.sub("", label or "")
    if not raw:
        return None

    last_dot = raw.rfind(".")
    last_comma = raw.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        if last_comma > last_dot:
            raw = raw.replace(".", "").replace(",", ".")
        else:
            raw = raw.replace(",", "")
    elif last_comma >= 0:
        raw = raw.replace(",", "") if raw.count(",") > 1 else raw.replace(",", ".")
    elif last_dot >= 0 and raw.count(".") > 1:
        raw = raw.replace(".", "")

    raw = _NON_NUMERIC_RE.sub("", raw)
    try:
        d = Decimal(raw)
    except InvalidOperation:
        return None
    if not d.is_finite():
        return None
    return d


def normalize_decimal(label: Optional[str]) -> NormalizedValue:
    """Canonical dot-decimal form; ``value`` is None when the label is not a number."""
    clean = (label or "").strip()
    d = parse_decimal(clean)
    if d is None:
        logger.debug({"normalize": "decimal_nan", "label": clean})
        return NormalizedValue(value=None, label=clean)
    return NormalizedValue(value=_plain(d), label=clean)


def normalize_mcm(label: Optional[str]) -> NormalizedValue:
    """Parse "meters,centimeters" into total centimeters."""
    raw = _WHITESPACE_RE.sub("", label or "").replace(".", ",", 1)
    parts = raw.split(",")
    meters = _int_prefix(parts[0]) if parts else 0
    cm = _int_prefix(parts[1]) if len(parts) > 1 else 0
    total = meters * 100 + cm
    return NormalizedValue(value=str(total), label=display_from_mcm(total))


def normalize_open(label: Optional[str]) -> NormalizedValue:
    clean = (label or "").strip()
    return NormalizedValue(value=clean, label=clean)


def _coerce_draw_tag(tag: Union[DrawTag, str, None]) -> Optional[DrawTag]:
    if tag is None or tag == "":
        return None
    if isinstance(tag, DrawTag):
        return tag
    try:
        return DrawTag(str(tag).strip().lower())
    except ValueError:
        raise InputError(f"unknown draw tag: {tag!r}")


def normalize_score(
    base_score: Optional[str],
    draw_tag: Union[DrawTag, str, None] = None,
) -> NormalizedValue:
    """Football/hockey scores as ``H-A``; tagged draws become ``H-A tag``."""
    clean = (base_score or "").strip()
    tag = _coerce_draw_tag(draw_tag)
    parts = [p.strip() for p in clean.split("-")]
    if len(parts) == 2 and parts[0].isdigit() and parts[1].isdigit():
        home, away = int(parts[0]), int(parts[1])
        if home == away and tag is not None:
            value = f"{home}-{away} {tag.value}"
            return NormalizedValue(value=value, label=value)
        if home != away:
            value = f"{home}-{away}"
            return NormalizedValue(value=value, label=value)
    return NormalizedValue(value=clean, label=clean)


def normalize(
    result_type: Union[ResultType, str, None],
    label: Optional[str],
    draw_tag: Union[DrawTag, str, None] = None,
) -> NormalizedValue:
    """Dispatch on result type. List answers are compared by item id, so they
    normalize like open text here."""
    rt = result_type if isinstance(result_type, ResultType) else ResultType.from_label(result_type)
    if rt is ResultType.TIME:
        return normalize_time(label)
    if rt is ResultType.DECIMAL:
        return normalize_decimal(label)
    if rt is ResultType.MCM:
        return normalize_mcm(label)
    if rt in (ResultType.FOOTBALL, ResultType.HOCKEY):
        return normalize_score(label, draw_tag)
    return normalize_open(label)


def canonical_value(result_type: ResultType, stored: Optional[str]) -> Optional[str]:
    """Canonical comparable form of an already stored ``result`` column.

    Stored results are canonical already, so this is idempotent: plain
    seconds and plain centimeters pass through, anything else is re-parsed.
    """
    if stored is None:
        return None
    raw = str(stored).strip()
    if result_type is ResultType.TIME:
        if raw.isdigit():
            return str(int(raw))
        return normalize_time(raw).value
    if result_type is ResultType.MCM:
        if raw.lstrip("-").isdigit():
            return str(int(raw))
        return normalize_mcm(raw).value
    if result_type is ResultType.DECIMAL:
        return normalize_decimal(raw).value
    if result_type in (ResultType.FOOTBALL, ResultType.HOCKEY):
        return normalize_score(raw).value
    return raw


# ─────────────────────────────────────────────────────────────────────────────
# Margin variants and display helpers
# ─────────────────────────────────────────────────────────────────────────────


def decimals_from_step(step: Number) -> int:
    """Number of fractional digits of the step (0.5 -> 1, 0.25 -> 2, 1 -> 0)."""
    d = Decimal(str(step)).normalize()
    exponent = d.as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def build_variants(
    center: Number,
    step_count: int,
    step_size: Number,
    decimals: Optional[int] = None,
    *,
    minimum: Optional[Number] = None,
) -> List[Decimal]:
    """Return sorted unique ``{center, center +/- k*step}`` for k in 1..step_count.

    Each value is rounded half-up to ``decimals`` places (derived from the
    step when omitted). Values below ``minimum`` are dropped.
    """
    c = Decimal(str(center))
    step = Decimal(str(step_size))
    count = max(0, int(step_count))
    places = decimals_from_step(step) if decimals is None else max(0, int(decimals))
    quantum = Decimal(1).scaleb(-places)
    floor = Decimal(str(minimum)) if minimum is not None else None

    values = {c.quantize(quantum, rounding=ROUND_HALF_UP)}
    if step > 0:
        for k in range(1, count + 1):
            values.add((c + step * k).quantize(quantum, rounding=ROUND_HALF_UP))
            values.add((c - step * k).quantize(quantum, rounding=ROUND_HALF_UP))
    if floor is not None:
        values = {v for v in values if v >= floor}
    return sorted(values)


def format_result_dot(value: Number, decimals: int) -> str:
    """Canonical stored form of a decimal variant (dot separator, no trailing zeros)."""
    d = Decimal(str(value)).quantize(Decimal(1).scaleb(-max(0, decimals)), rounding=ROUND_HALF_UP)
    return _plain(d)


def format_label_comma(value: Number, decimals: int) -> str:
    """Display form of a decimal variant: fixed places, comma separator."""
    d = Decimal(str(value)).quantize(Decimal(1).scaleb(-max(0, decimals)), rounding=ROUND_HALF_UP)
    return format(d, "f").replace(".", ",")


def display_from_seconds(total: Number) -> str:
    seconds = max(0, int(Decimal(str(total))))
    h, rest = divmod(seconds, 3600)
    m, s = divmod(rest, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def display_from_mcm(total: Number) -> str:
    cm = max(0, int(Decimal(str(total))))
    meters, rest = divmod(cm, 100)
    return f"{meters},{rest:02d}"


__all__ = [
    "TIME_FALLBACK",
    "normalize_time",
    "parse_decimal",
    "normalize_decimal",
    "normalize_mcm",
    "normalize_open",
    "normalize_score",
    "normalize",
    "canonical_value",
    "decimals_from_step",
    "build_variants",
    "format_result_dot",
    "format_label_comma",
    "display_from_seconds",
    "display_from_mcm",
]
