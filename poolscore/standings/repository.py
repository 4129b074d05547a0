"""SQL access for season/league standings (``classification`` table).

Every query takes the dataset explicitly. Real rows are those whose
``virtual`` flag is NULL, ``'0'`` or ``''``; virtual rows carry ``'1'``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import text

from poolscore.shared.enums import Dataset

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 200

STANDING_COLUMNS = (
    "season_id",
    "league_id",
    "user_id",
    "question_id",
    "points",
    "score",
    "sequence",
    "seed",
    "virtual",
    "insertion",
    "changed",
)
ORDERABLE = frozenset(STANDING_COLUMNS)


def dataset_clause(dataset: Dataset, alias: Optional[str] = None) -> str:
    col = f"{alias}.virtual" if alias else "virtual"
    if dataset.is_virtual:
        return f"{col} = '1'"
    return f"({col} IS NULL OR {col} = '0' OR {col} = '')"


def _columns(alias: str) -> str:
    return ", ".join(f"{alias}.{c}" for c in STANDING_COLUMNS)


def _standings_at_sql(dataset: Dataset):
    return text(
        f"""
        SELECT
            {_columns("c")},
            p.seed AS prev_seed,
            CASE WHEN p.seed IS NULL THEN NULL ELSE p.seed - c.seed END AS movement
        FROM classification c
        LEFT JOIN classification p
          ON p.season_id = c.season_id
         AND p.league_id = c.league_id
         AND p.user_id = c.user_id
         AND p.sequence = :prev_sequence
         AND {dataset_clause(dataset, "p")}
        WHERE c.season_id = :season_id
          AND c.league_id = :league_id
          AND c.sequence = :sequence
          AND {dataset_clause(dataset, "c")}
        ORDER BY c.seed ASC, c.score DESC, c.points DESC, c.user_id ASC
        """
    )


def _latest_sequence_sql(dataset: Dataset):
    return text(
        f"""
        SELECT MAX(sequence) AS latest
        FROM classification
        WHERE season_id = :season_id
          AND league_id = :league_id
          AND {dataset_clause(dataset)}
        """
    )


def _user_progression_sql(dataset: Dataset):
    return text(
        f"""
        SELECT sequence, seed AS seat, score, points
        FROM classification
        WHERE season_id = :season_id
          AND league_id = :league_id
          AND user_id = :user_id
          AND {dataset_clause(dataset)}
        ORDER BY sequence ASC
        """
    )


def _league_trend_sql(dataset: Dataset):
    return text(
        f"""
        SELECT {", ".join(STANDING_COLUMNS)}
        FROM classification
        WHERE season_id = :season_id
          AND league_id = :league_id
          AND sequence BETWEEN :from_sequence AND :to_sequence
          AND {dataset_clause(dataset)}
        ORDER BY sequence ASC, seed ASC
        """
    )


# One statement per dataset, built once at import.
_SELECT_STANDINGS_AT = {d: _standings_at_sql(d) for d in Dataset}
_SELECT_LATEST_SEQUENCE = {d: _latest_sequence_sql(d) for d in Dataset}
_SELECT_USER_PROGRESSION = {d: _user_progression_sql(d) for d in Dataset}
_SELECT_LEAGUE_TREND = {d: _league_trend_sql(d) for d in Dataset}


class PageOptions(BaseModel):
    """Filters, ordering and paging for the standings listing."""

    page: int = Field(default=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE)
    order_by: str = "season_id"
    order_dir: str = "asc"
    season_id: Optional[int] = None
    league_id: Optional[int] = None
    user_id: Optional[int] = None
    question_id: Optional[int] = None
    virtual: bool = False

    @field_validator("order_by")
    @classmethod
    def _whitelist_order_by(cls, v: str) -> str:
        return v if v in ORDERABLE else "season_id"

    @field_validator("order_dir")
    @classmethod
    def _normalize_dir(cls, v: str) -> str:
        return "desc" if str(v).lower() == "desc" else "asc"

    @field_validator("virtual", mode="before")
    @classmethod
    def _parse_virtual(cls, v: Any) -> bool:
        return Dataset.from_flag(v).is_virtual

    @property
    def dataset(self) -> Dataset:
        return Dataset.VIRTUAL if self.virtual else Dataset.REAL


class StandingsRepository:
    def __init__(self, database: Any, *, max_page_size: int = MAX_PAGE_SIZE):
        self.database = database
        self.max_page_size = max_page_size

    async def latest_sequence(self, season_id: int, league_id: int, dataset: Dataset) -> int:
        """Highest sequence of the dataset, 0 when there is none."""
        rows = await self.database.read(
            _SELECT_LATEST_SEQUENCE[dataset],
            params={"season_id": season_id, "league_id": league_id},
        )
        if not rows or rows[0]["latest"] is None:
            return 0
        return int(rows[0]["latest"])

    async def standings_at(
        self,
        season_id: int,
        league_id: int,
        sequence: int,
        dataset: Dataset,
    ) -> List[Dict[str, Any]]:
        """Rows of one sequence with movement against ``sequence - 1`` of the same dataset."""
        rows = await self.database.read(
            _SELECT_STANDINGS_AT[dataset],
            params={
                "season_id": season_id,
                "league_id": league_id,
                "sequence": sequence,
                "prev_sequence": sequence - 1,
            },
        )
        return [dict(r) for r in rows]

    async def user_progression(
        self,
        season_id: int,
        league_id: int,
        user_id: int,
        dataset: Dataset,
    ) -> List[Dict[str, Any]]:
        rows = await self.database.read(
            _SELECT_USER_PROGRESSION[dataset],
            params={"season_id": season_id, "league_id": league_id, "user_id": user_id},
        )
        return [dict(r) for r in rows]

    async def league_trend(
        self,
        season_id: int,
        league_id: int,
        from_sequence: int,
        to_sequence: int,
        dataset: Dataset,
    ) -> List[Dict[str, Any]]:
        rows = await self.database.read(
            _SELECT_LEAGUE_TREND[dataset],
            params={
                "season_id": season_id,
                "league_id": league_id,
                "from_sequence": from_sequence,
                "to_sequence": to_sequence,
            },
        )
        return [dict(r) for r in rows]

    async def page(self, opts: PageOptions) -> Dict[str, Any]:
        """Paged listing with whitelisted ordering.

        Returns ``{"data": rows, "meta": {...}}``.
        """
        page_size = max(1, min(opts.page_size, self.max_page_size))
        page = max(1, opts.page)

        where = []
        params: Dict[str, Any] = {}
        for column in ("season_id", "league_id", "user_id", "question_id"):
            value = getattr(opts, column)
            if value is not None:
                where.append(f"{column} = :{column}")
                params[column] = value
        where.append(dataset_clause(opts.dataset))
        where_sql = " AND ".join(where)

        select = text(
            f"""
            SELECT {", ".join(STANDING_COLUMNS)}
            FROM classification
            WHERE {where_sql}
            ORDER BY {opts.order_by} {opts.order_dir.upper()}, id ASC
            LIMIT :limit OFFSET :offset
            """
        )
        count = text(f"SELECT COUNT(*) AS cnt FROM classification WHERE {where_sql}")

        rows = await self.database.read(
            select, params={**params, "limit": page_size, "offset": (page - 1) * page_size}
        )
        counted = await self.database.read(count, params=params)
        total = int(counted[0]["cnt"]) if counted else 0
        return {
            "data": [dict(r) for r in rows],
            "meta": {
                "page": page,
                "page_size": page_size,
                "total": total,
                "total_pages": max(1, math.ceil(total / page_size)),
                "order_by": opts.order_by,
                "order_dir": opts.order_dir,
            },
        }


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "STANDING_COLUMNS",
    "PageOptions",
    "StandingsRepository",
    "dataset_clause",
]
