"""Standings queries: ranking, movement and enrichment.

Movement of a real standing is measured against ``sequence - 1`` of the
real dataset. Virtual (what-if) standings are always measured against the
latest real sequence, never against the previous virtual one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from poolscore.shared.enums import Dataset

from .cache import LookupCache
from .lookups import LookupService
from .movement import apply_movement_against_baseline
from .repository import PageOptions, StandingsRepository

logger = logging.getLogger("poolscore.standings")

Expand = Union[str, Sequence[str], None]


def _dataset(virtual: Any) -> Dataset:
    if isinstance(virtual, Dataset):
        return virtual
    return Dataset.from_flag(virtual)


class StandingsService:
    def __init__(self, repository: StandingsRepository, lookups: LookupService):
        self.repository = repository
        self.lookups = lookups

    @classmethod
    def from_database(cls, database: Any, settings: Any = None) -> "StandingsService":
        if settings is None:
            return cls(StandingsRepository(database), LookupService(database))
        cfg = settings.standings
        cache = LookupCache(ttl_seconds=cfg.lookup_ttl_seconds, maxsize=cfg.lookup_cache_size)
        return cls(
            StandingsRepository(database, max_page_size=cfg.max_page_size),
            LookupService(database, cache),
        )

    async def _with_movement(
        self,
        season_id: int,
        league_id: int,
        sequence: int,
        dataset: Dataset,
    ) -> List[Dict[str, Any]]:
        rows = await self.repository.standings_at(season_id, league_id, sequence, dataset)
        if not rows or not dataset.is_virtual:
            return rows

        real_sequence = await self.repository.latest_sequence(season_id, league_id, Dataset.REAL)
        baseline: List[Dict[str, Any]] = []
        if real_sequence:
            baseline = await self.repository.standings_at(season_id, league_id, real_sequence, Dataset.REAL)
        logger.debug({
            "virtual_baseline": real_sequence,
            "season_id": season_id,
            "league_id": league_id,
            "sequence": sequence,
        })
        return apply_movement_against_baseline(rows, baseline)

    async def current(
        self,
        season_id: int,
        league_id: int,
        virtual: Any = False,
        expand: Expand = None,
    ) -> Dict[str, Any]:
        """Latest sequence of the dataset; ``sequence`` is 0 when there is none."""
        dataset = _dataset(virtual)
        sequence = await self.repository.latest_sequence(season_id, league_id, dataset)
        if not sequence:
            return {"sequence": 0, "standings": []}
        rows = await self._with_movement(season_id, league_id, sequence, dataset)
        return {"sequence": sequence, "standings": await self.lookups.enrich(rows, expand)}

    async def standings_at(
        self,
        season_id: int,
        league_id: int,
        sequence: int,
        virtual: Any = False,
        expand: Expand = None,
    ) -> Dict[str, Any]:
        dataset = _dataset(virtual)
        rows = await self._with_movement(season_id, league_id, sequence, dataset)
        return {"sequence": sequence, "standings": await self.lookups.enrich(rows, expand)}

    async def list(self, options: Union[PageOptions, Dict[str, Any], None] = None, expand: Expand = None) -> Dict[str, Any]:
        opts = options if isinstance(options, PageOptions) else PageOptions(**(options or {}))
        result = await self.repository.page(opts)
        result["data"] = await self.lookups.enrich(result["data"], expand)
        return result

    async def user_progression(
        self,
        season_id: int,
        league_id: int,
        user_id: int,
        virtual: Any = False,
    ) -> List[Dict[str, Any]]:
        return await self.repository.user_progression(season_id, league_id, user_id, _dataset(virtual))

    async def league_trend(
        self,
        season_id: int,
        league_id: int,
        from_sequence: int,
        to_sequence: int,
        virtual: Any = False,
        expand: Expand = None,
    ) -> Dict[str, Any]:
        rows = await self.repository.league_trend(
            season_id, league_id, from_sequence, to_sequence, _dataset(virtual)
        )
        return {"from": from_sequence, "to": to_sequence, "rows": await self.lookups.enrich(rows, expand)}

    def invalidate_lookups(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return self.lookups.cache.clear()
        return self.lookups.cache.invalidate_kind(kind)


__all__ = ["StandingsService"]
