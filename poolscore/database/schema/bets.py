"""Bets, questions, official solutions and submitted answers."""

from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Bet(Base):
    __tablename__ = "bet"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_id: Mapped[int | None] = mapped_column(
        ForeignKey("season.id", ondelete="SET NULL"),
        comment="Season the bet belongs to",
    )
    label: Mapped[str | None] = mapped_column(String(255))


class Question(Base):
    __tablename__ = "question"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bet_id: Mapped[int] = mapped_column(
        ForeignKey("bet.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("question.id", ondelete="CASCADE"),
        comment="NULL for the root (main) question of a group",
    )
    groupcode: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Questions sharing a groupcode form one scoring unit",
    )
    lineup: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order within the group")
    points: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0,
        comment="Configured payout; 0 marks a structural sub-question",
    )
    average: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=1,
        comment="Normalization factor applied when tallying scores",
    )
    resulttype_id: Mapped[int] = mapped_column(ForeignKey("resulttype.id"), nullable=False)
    margin: Mapped[float | None] = mapped_column(Float, comment="Variant steps on each side")
    step: Mapped[float | None] = mapped_column(Float, comment="Variant step size")
    label: Mapped[str | None] = mapped_column(String(255))

    __table_args__ = (
        Index("ix_question_bet_id", "bet_id"),
        Index("ix_question_groupcode", "groupcode"),
    )


class Solution(Base):
    __tablename__ = "solution"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("question.id", ondelete="CASCADE"),
        nullable=False,
    )
    result: Mapped[str | None] = mapped_column(String(255), comment="Official value (normalized on read)")
    listitem_id: Mapped[int | None] = mapped_column(ForeignKey("list_item.id"))

    __table_args__ = (Index("ix_solution_question_id", "question_id"),)


class Answer(Base):
    __tablename__ = "answer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("question.id", ondelete="CASCADE"),
        nullable=False,
    )
    result: Mapped[str | None] = mapped_column(String(255), comment="Canonical value")
    label: Mapped[str | None] = mapped_column(String(255), comment="User input or generated display label")
    listitem_id: Mapped[int | None] = mapped_column(ForeignKey("list_item.id"))
    points: Mapped[float] = mapped_column(Float, nullable=False, default=0, comment="Stake carried by this row")
    posted: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="1 for the submitted row, 0 for generated margin variants",
    )
    correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    __table_args__ = (
        Index("ix_answer_question_id", "question_id"),
        Index("ix_answer_user_question", "user_id", "question_id"),
    )


__all__ = ["Bet", "Question", "Solution", "Answer"]
