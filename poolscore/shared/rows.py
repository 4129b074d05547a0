from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict


class QuestionRow(TypedDict, total=False):
    id: int
    bet_id: int
    parent_id: Optional[int]
    groupcode: int
    points: float
    lineup: int
    result_type: str
    margin: Optional[float]
    step: Optional[float]
    average: float


class SolutionRow(TypedDict, total=False):
    question_id: int
    result: Optional[str]
    listitem_id: Optional[int]


class AnswerRow(TypedDict, total=False):
    id: int
    user_id: int
    question_id: int
    result: Optional[str]
    label: Optional[str]
    listitem_id: Optional[int]
    points: float
    posted: int
    correct: int
    score: float


class ScoreUpdate(TypedDict):
    answer_id: int
    correct: int
    score: float


class TallyRow(TypedDict, total=False):
    bet_id: int
    user_id: int
    points: float
    sequence: int
    seed: int
    insertion: str


class StandingRow(TypedDict, total=False):
    season_id: int
    league_id: int
    user_id: int
    question_id: Optional[int]
    points: Optional[float]
    score: Optional[float]
    sequence: int
    seed: int
    virtual: Optional[str]
    insertion: Optional[datetime | str]
    changed: Optional[int]
    prev_seed: Optional[int]
    movement: Optional[int]


__all__ = [
    "QuestionRow",
    "SolutionRow",
    "AnswerRow",
    "ScoreUpdate",
    "TallyRow",
    "StandingRow",
]
