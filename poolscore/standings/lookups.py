"""Enrichment lookups for seasons, leagues and users.

Each kind is described once in ``REGISTRY`` (table, extra columns,
projector). Results are cached per (kind, sorted unique ids).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import bindparam, text

from .cache import LookupCache, lookup_key

logger = logging.getLogger("poolscore.standings.lookups")

EXPAND_KEYS: Tuple[str, ...] = ("season", "league", "user")


def _project_labelled(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {"id": int(row["id"]), "label": row.get("label")}


def _project_user(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": int(row["id"]),
        "firstname": row.get("firstname"),
        "infix": row.get("infix"),
        "lastname": row.get("lastname"),
        "name": user_display_name(row),
    }


@dataclass(frozen=True)
class LookupSpec:
    table: str
    columns: Tuple[str, ...]
    projector: Callable[[Mapping[str, Any]], Dict[str, Any]]
    row_key: str

    def statement(self):
        cols = ", ".join(("id",) + self.columns)
        return text(f"SELECT {cols} FROM {self.table} WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )


REGISTRY: Dict[str, LookupSpec] = {
    "season": LookupSpec("season", ("label",), _project_labelled, "season_id"),
    "league": LookupSpec("league", ("label",), _project_labelled, "league_id"),
    "user": LookupSpec("users", ("firstname", "infix", "lastname"), _project_user, "user_id"),
}

_STATEMENTS = {kind: spec.statement() for kind, spec in REGISTRY.items()}


def parse_expand(value: Union[str, Sequence[str], None]) -> FrozenSet[str]:
    """Parse ``"season,user"``, ``["league"]`` or ``"all"``; unknown names are ignored."""
    if value is None:
        return frozenset()
    parts: List[str] = []
    items = [value] if isinstance(value, str) else list(value)
    for item in items:
        parts.extend(p.strip().lower() for p in str(item).split(","))
    if "all" in parts:
        return frozenset(EXPAND_KEYS)
    return frozenset(p for p in parts if p in REGISTRY)


def user_display_name(user: Optional[Mapping[str, Any]]) -> str:
    if not user:
        return ""
    parts = [user.get("firstname"), user.get("infix"), user.get("lastname")]
    return " ".join(p for p in parts if p)


class LookupService:
    def __init__(self, database: Any, cache: Optional[LookupCache] = None):
        self.database = database
        self.cache: LookupCache = cache if cache is not None else LookupCache()

    async def fetch(self, kind: str, ids: Iterable[Any]) -> Dict[int, Dict[str, Any]]:
        """Map id -> projected object. No query is issued for an empty id list."""
        spec = REGISTRY[kind]
        unique = sorted({int(i) for i in ids if i is not None})
        if not unique:
            return {}

        async def _load() -> Dict[int, Dict[str, Any]]:
            rows = await self.database.read(_STATEMENTS[kind], params={"ids": unique})
            logger.debug({"lookup": kind, "ids": len(unique), "rows": len(rows)})
            return {obj["id"]: obj for obj in (spec.projector(r) for r in rows)}

        return await self.cache.get_or_set(lookup_key(kind, unique), _load)

    async def fetch_many(
        self,
        wanted: FrozenSet[str],
        ids_by_kind: Mapping[str, Iterable[Any]],
    ) -> Dict[str, Dict[int, Dict[str, Any]]]:
        """Run the lookups of every requested kind concurrently."""
        kinds = [k for k in EXPAND_KEYS if k in wanted]
        maps = await asyncio.gather(*(self.fetch(k, ids_by_kind.get(k, ())) for k in kinds))
        return dict(zip(kinds, maps))

    async def enrich(
        self,
        rows: Sequence[Mapping[str, Any]],
        expand: Union[str, Sequence[str], FrozenSet[str], None],
    ) -> List[Dict[str, Any]]:
        """Attach ``season``/``league``/``user`` objects (or None) to every row."""
        wanted = expand if isinstance(expand, frozenset) else parse_expand(expand)
        if not wanted or not rows:
            return [dict(r) for r in rows]

        ids_by_kind = {
            kind: {r[REGISTRY[kind].row_key] for r in rows}
            for kind in wanted
        }
        maps = await self.fetch_many(wanted, ids_by_kind)

        out = []
        for row in rows:
            enriched = dict(row)
            for kind, found in maps.items():
                enriched[kind] = found.get(int(row[REGISTRY[kind].row_key]))
            out.append(enriched)
        return out


__all__ = [
    "EXPAND_KEYS",
    "REGISTRY",
    "LookupSpec",
    "LookupService",
    "parse_expand",
    "user_display_name",
]
