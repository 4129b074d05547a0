"""Scoring parameters.

Changing these alters persisted scores; re-run the scoring pass for every
affected bet after a change.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PrecisionParams(BaseModel):
    """Rounding applied to computed scores before they are written."""

    score_places: int = Field(
        default=8,
        ge=0,
        le=12,
        description="Decimal places kept for per-answer scores and tallies.",
    )


class MarginParams(BaseModel):
    """Bounds for margin variant generation at submission time."""

    max_step_count: int = Field(
        default=50,
        ge=0,
        le=500,
        description="Upper bound on variants generated on each side of the center.",
    )
    min_time_step_seconds: int = Field(
        default=1,
        ge=1,
        description="Smallest step for time questions (seconds).",
    )
    min_mcm_step_cm: int = Field(
        default=1,
        ge=1,
        description="Smallest step for meters,centimeters questions.",
    )


class BatchParams(BaseModel):
    update_chunk_size: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Rows per executemany chunk when committing score updates.",
    )


class ScoringParams(BaseModel):
    """Master configuration for all scoring parameters."""

    precision: PrecisionParams = Field(default_factory=PrecisionParams)
    margin: MarginParams = Field(default_factory=MarginParams)
    batch: BatchParams = Field(default_factory=BatchParams)


DEFAULT_SCORING_PARAMS = ScoringParams()


def get_scoring_params() -> ScoringParams:
    return DEFAULT_SCORING_PARAMS


__all__ = [
    "PrecisionParams",
    "MarginParams",
    "BatchParams",
    "ScoringParams",
    "DEFAULT_SCORING_PARAMS",
    "get_scoring_params",
]
