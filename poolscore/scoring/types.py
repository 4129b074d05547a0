"""Type definitions for the scoring engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Tuple, Union

from poolscore.shared.enums import ResultType


# Rounding precision for stored scores
DECIMAL_PLACES = 8


class InputError(ValueError):
    """Raised when a caller supplies an invalid solution or submission."""

    pass


class ScoringError(Exception):
    """Raised when a scoring or tally pass fails."""

    def __init__(self, message: str, *, bet_id: int | None = None):
        super().__init__(message)
        self.bet_id = bet_id


@dataclass(frozen=True)
class NormalizedValue:
    """Result of normalizing a raw label.

    ``value`` is the canonical comparable form, or None when the label could
    not be parsed (it then never matches anything).
    """

    value: Optional[str]
    label: str
    list_item_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.value is not None or self.list_item_id is not None


# ─────────────────────────────────────────────────────────────────────────────
# Question topology, computed once per bet
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Single:
    question_id: int
    points: Decimal


@dataclass(frozen=True)
class BundleRoot:
    question_id: int
    points: Decimal
    subs: Tuple[int, ...]


@dataclass(frozen=True)
class Sub:
    question_id: int
    root_id: int


@dataclass(frozen=True)
class Bonus:
    question_id: int
    root_id: int
    points: Decimal


@dataclass(frozen=True)
class Margin:
    question_id: int
    points: Decimal


Shape = Union[Single, BundleRoot, Sub, Bonus, Margin]


@dataclass(frozen=True)
class Group:
    """A root question with its subs and bonuses in lineup order."""

    root_id: int
    groupcode: int
    subs: Tuple[int, ...] = ()
    bonuses: Tuple[int, ...] = ()
    bonus_pot: Decimal = Decimal("0")


@dataclass
class BetPlan:
    bet_id: int
    groups: Tuple[Group, ...] = ()
    shapes: Dict[int, Shape] = field(default_factory=dict)
    result_types: Dict[int, ResultType] = field(default_factory=dict)

    @property
    def margin_question_ids(self) -> Tuple[int, ...]:
        return tuple(sorted(q for q, s in self.shapes.items() if isinstance(s, Margin)))

    def result_type(self, question_id: int) -> ResultType:
        return self.result_types.get(question_id, ResultType.OPEN)


@dataclass(frozen=True)
class ScoreDecision:
    answer_id: int
    correct: bool
    score: Decimal


__all__ = [
    "DECIMAL_PLACES",
    "InputError",
    "ScoringError",
    "NormalizedValue",
    "Single",
    "BundleRoot",
    "Sub",
    "Bonus",
    "Margin",
    "Shape",
    "Group",
    "BetPlan",
    "ScoreDecision",
]
