"""Scoring: value normalization, canonical keys, topology and the pure engine."""

from .engine import compute_scores, decisions_to_updates
from .keys import CanonicalKey, KeyKind, canonical_key, key_for_stored, official_key_set
from .normalize import build_variants, decimals_from_step, normalize
from .topology import build_plan, is_margin_question
from .types import (
    BetPlan,
    Bonus,
    BundleRoot,
    Group,
    InputError,
    Margin,
    NormalizedValue,
    ScoreDecision,
    ScoringError,
    Single,
    Sub,
)

__all__ = [
    "compute_scores",
    "decisions_to_updates",
    "CanonicalKey",
    "KeyKind",
    "canonical_key",
    "key_for_stored",
    "official_key_set",
    "build_variants",
    "decimals_from_step",
    "normalize",
    "build_plan",
    "is_margin_question",
    "BetPlan",
    "Bonus",
    "BundleRoot",
    "Group",
    "InputError",
    "Margin",
    "NormalizedValue",
    "ScoreDecision",
    "ScoringError",
    "Single",
    "Sub",
]
