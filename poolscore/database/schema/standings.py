"""Versioned standings: per-bet tallies and season/league classifications."""

from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BetTally(Base):
    __tablename__ = "bet_tally"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bet_id: Mapped[int] = mapped_column(ForeignKey("bet.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[float] = mapped_column(Float, nullable=False, comment="Sum of score / question average")
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    seed: Mapped[int] = mapped_column(Integer, nullable=False)
    insertion: Mapped[str] = mapped_column(
        String(19),
        nullable=False,
        comment="YYYY-MM-DD HH:MM:SS in the display time zone, shared by one sequence",
    )

    __table_args__ = (
        Index("ix_bet_tally_bet_sequence", "bet_id", "sequence"),
        {
            "comment": "Per-bet standings; only the latest sequence is retained",
        },
    )


class Classification(Base):
    __tablename__ = "classification"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(Integer, nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    question_id: Mapped[int | None] = mapped_column(Integer, comment="Bet slot the row was computed after")
    points: Mapped[float | None] = mapped_column(Float)
    score: Mapped[float | None] = mapped_column(Float)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    seed: Mapped[int] = mapped_column(Integer, nullable=False)
    virtual: Mapped[str | None] = mapped_column(
        String(1),
        comment="NULL, '' or '0' = real; '1' = virtual",
    )
    insertion: Mapped[str | None] = mapped_column(String(19))
    changed: Mapped[int | None] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index("ix_classification_scope", "season_id", "league_id", "sequence"),
        Index("ix_classification_user", "user_id"),
    )


__all__ = ["BetTally", "Classification"]
