"""Create pool scoring tables

Revision ID: 0001_create_pool_tables
Revises:
Create Date: 2026-10-17 09:00:00
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect


revision = "0001_create_pool_tables"
down_revision = None
branch_labels = None
depends_on = None


_TABLES = (
    "classification",
    "bet_tally",
    "answer",
    "solution",
    "question",
    "bet",
    "list_item",
    "resulttype",
    "users",
    "league",
    "season",
)


def upgrade() -> None:
    bind = op.get_bind()
    existing = set(inspect(bind).get_table_names())
    if "answer" in existing:
        return

    op.create_table(
        "season",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("label", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "league",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("firstname", sa.String(length=128), nullable=True),
        sa.Column("infix", sa.String(length=32), nullable=True),
        sa.Column("lastname", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "resulttype",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(length=32), nullable=False),
    )
    op.create_table(
        "list_item",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "bet",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("season_id", sa.Integer(), sa.ForeignKey("season.id", ondelete="SET NULL"), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=True),
    )
    op.create_table(
        "question",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bet_id", sa.Integer(), sa.ForeignKey("bet.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("question.id", ondelete="CASCADE"), nullable=True),
        sa.Column("groupcode", sa.Integer(), nullable=False),
        sa.Column("lineup", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("average", sa.Float(), nullable=False, server_default="1"),
        sa.Column("resulttype_id", sa.Integer(), sa.ForeignKey("resulttype.id"), nullable=False),
        sa.Column("margin", sa.Float(), nullable=True),
        sa.Column("step", sa.Float(), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_question_bet_id", "question", ["bet_id"])
    op.create_index("ix_question_groupcode", "question", ["groupcode"])
    op.create_table(
        "solution",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("question_id", sa.Integer(), sa.ForeignKey("question.id", ondelete="CASCADE"), nullable=False),
        sa.Column("result", sa.String(length=255), nullable=True),
        sa.Column("listitem_id", sa.Integer(), sa.ForeignKey("list_item.id"), nullable=True),
    )
    op.create_index("ix_solution_question_id", "solution", ["question_id"])
    op.create_table(
        "answer",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_id", sa.Integer(), sa.ForeignKey("question.id", ondelete="CASCADE"), nullable=False),
        sa.Column("result", sa.String(length=255), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=True),
        sa.Column("listitem_id", sa.Integer(), sa.ForeignKey("list_item.id"), nullable=True),
        sa.Column("points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("posted", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("correct", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
    )
    op.create_index("ix_answer_question_id", "answer", ["question_id"])
    op.create_index("ix_answer_user_question", "answer", ["user_id", "question_id"])
    op.create_table(
        "bet_tally",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bet_id", sa.Integer(), sa.ForeignKey("bet.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("points", sa.Float(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("seed", sa.Integer(), nullable=False),
        sa.Column("insertion", sa.String(length=19), nullable=False),
    )
    op.create_index("ix_bet_tally_bet_sequence", "bet_tally", ["bet_id", "sequence"])
    op.create_table(
        "classification",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=True),
        sa.Column("points", sa.Float(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("seed", sa.Integer(), nullable=False),
        sa.Column("virtual", sa.String(length=1), nullable=True),
        sa.Column("insertion", sa.String(length=19), nullable=True),
        sa.Column("changed", sa.Integer(), nullable=True),
    )
    op.create_index("ix_classification_scope", "classification", ["season_id", "league_id", "sequence"])
    op.create_index("ix_classification_user", "classification", ["user_id"])


def downgrade() -> None:
    bind = op.get_bind()
    existing = set(inspect(bind).get_table_names())
    for table in _TABLES:
        if table in existing:
            op.drop_table(table)
