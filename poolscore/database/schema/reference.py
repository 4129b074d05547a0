"""Reference tables: seasons, leagues, users, result types and list items."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Season(Base):
    __tablename__ = "season"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, comment="Season id (usually the year)")
    label: Mapped[str | None] = mapped_column(String(128), comment="Display label")


class League(Base):
    __tablename__ = "league"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str | None] = mapped_column(String(128), comment="Display label")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    firstname: Mapped[str | None] = mapped_column(String(128))
    infix: Mapped[str | None] = mapped_column(String(32))
    lastname: Mapped[str | None] = mapped_column(String(128))


class ResultTypeRef(Base):
    __tablename__ = "resulttype"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="list|time|decimal|mcm|open|football|hockey (unknown labels score as open)",
    )


class ListItem(Base):
    __tablename__ = "list_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)


__all__ = ["Season", "League", "User", "ResultTypeRef", "ListItem"]
