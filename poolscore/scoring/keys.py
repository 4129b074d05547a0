"""Canonical equality keys.

A key is the thing an answer and an official solution are compared by.
Precedence is list-item id, then canonical value, then label. Keys of
different kinds never compare equal, and an ``INVALID`` key (unparseable
number, or nothing to compare at all) never matches anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Iterable, Optional

from poolscore.shared.enums import ResultType

from .normalize import canonical_value


class KeyKind(str, Enum):
    LIST_ITEM = "li"
    VALUE = "v"
    LABEL = "l"
    INVALID = "nan"


@dataclass(frozen=True)
class CanonicalKey:
    kind: KeyKind
    token: str = ""

    @property
    def comparable(self) -> bool:
        return self.kind is not KeyKind.INVALID

    def matches(self, official: AbstractSet["CanonicalKey"]) -> bool:
        return self.comparable and self in official

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.token}"


INVALID_KEY = CanonicalKey(KeyKind.INVALID)


def canonical_key(
    *,
    list_item_id: Optional[int] = None,
    value: Optional[str] = None,
    label: Optional[str] = None,
) -> CanonicalKey:
    if list_item_id is not None:
        return CanonicalKey(KeyKind.LIST_ITEM, str(int(list_item_id)))
    if value is not None:
        return CanonicalKey(KeyKind.VALUE, str(value))
    if label is not None:
        return CanonicalKey(KeyKind.LABEL, str(label))
    return INVALID_KEY


def key_for_stored(
    result_type: ResultType,
    *,
    result: Optional[str] = None,
    listitem_id: Optional[int] = None,
) -> CanonicalKey:
    """Key of a stored answer or solution row for a question of ``result_type``.

    List questions compare by item identity only. Every other type compares
    by the canonical value of ``result``.
    """
    if result_type is ResultType.LIST:
        if listitem_id is None:
            return INVALID_KEY
        return canonical_key(list_item_id=listitem_id)
    if result is None:
        return INVALID_KEY
    value = canonical_value(result_type, result)
    if value is None:
        return INVALID_KEY
    return canonical_key(value=value)


def official_key_set(result_type: ResultType, solutions: Iterable[dict]) -> frozenset:
    keys = set()
    for sol in solutions:
        key = key_for_stored(
            result_type,
            result=sol.get("result"),
            listitem_id=sol.get("listitem_id"),
        )
        if key.comparable:
            keys.add(key)
    return frozenset(keys)


__all__ = [
    "KeyKind",
    "CanonicalKey",
    "INVALID_KEY",
    "canonical_key",
    "key_for_stored",
    "official_key_set",
]
