"""Rank movement between a standings sequence and its baseline."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple

from poolscore.shared.rows import StandingRow


def _standing_key(row: Mapping[str, Any]) -> Tuple[int, int, int]:
    return (int(row["season_id"]), int(row["league_id"]), int(row["user_id"]))


def movement_between(prev_seed: Optional[int], seed: int) -> Optional[int]:
    """Positive when the user climbed; None without a baseline position."""
    if prev_seed is None:
        return None
    return int(prev_seed) - int(seed)


def apply_movement_against_baseline(
    current: Iterable[Mapping[str, Any]],
    baseline: Iterable[Mapping[str, Any]],
) -> List[StandingRow]:
    """Recompute ``prev_seed``/``movement`` of ``current`` against another table.

    Rows are matched on (season, league, user). Everything else on the
    current rows is preserved; the inputs are not modified.
    """
    seeds = {_standing_key(r): int(r["seed"]) for r in baseline}
    out: List[StandingRow] = []
    for row in current:
        prev_seed = seeds.get(_standing_key(row))
        updated: StandingRow = dict(row)  # type: ignore[assignment]
        updated["prev_seed"] = prev_seed
        updated["movement"] = movement_between(prev_seed, row["seed"])
        out.append(updated)
    return out


__all__ = ["apply_movement_against_baseline", "movement_between"]
