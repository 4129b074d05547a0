"""Per-bet tally and sequence aggregation.

Each rebuild aggregates the bet's scored answers into per-user totals,
assigns competition seeds and writes them as a new sequence in
``bet_tally``. Older sequences of the bet are pruned afterwards, so only the
latest sequence survives a successful rebuild.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import text

from poolscore.config.scoring_params import get_scoring_params
from poolscore.scoring.audit import ScoringAuditLogger
from poolscore.scoring.determinism import compute_hash, round_decimal, to_decimal
from poolscore.shared.rows import TallyRow

DEFAULT_TIMEZONE = "Europe/Amsterdam"
INSERTION_FORMAT = "%Y-%m-%d %H:%M:%S"


_SELECT_TOTALS = text(
    """
    SELECT
        a.user_id AS user_id,
        COALESCE(SUM(a.score / NULLIF(q.average, 0)), 0) AS total
    FROM answer a
    JOIN question q ON q.id = a.question_id
    WHERE q.bet_id = :bet_id
      AND (a.posted = 1 OR a.correct = 1)
    GROUP BY a.user_id
    ORDER BY total DESC, a.user_id ASC
    """
)

_SELECT_MAX_SEQUENCE = text(
    """
    SELECT MAX(sequence) AS max_sequence
    FROM bet_tally
    WHERE bet_id = :bet_id
    """
)

_INSERT_TALLY = text(
    """
    INSERT INTO bet_tally (bet_id, user_id, points, sequence, seed, insertion)
    VALUES (:bet_id, :user_id, :points, :sequence, :seed, :insertion)
    """
)

_DELETE_OLDER_SEQUENCES = text(
    """
    DELETE FROM bet_tally
    WHERE bet_id = :bet_id
      AND sequence < :sequence
    """
)

_SELECT_TALLY = text(
    """
    SELECT bet_id, user_id, points, sequence, seed, insertion
    FROM bet_tally
    WHERE bet_id = :bet_id
      AND sequence = :sequence
    ORDER BY seed ASC, points DESC, user_id ASC
    """
)


def assign_seeds(totals: Sequence[Decimal]) -> List[int]:
    """Competition ranking over totals already sorted descending.

    Ties share a seed; the next distinct total takes its 1-based position
    (10, 10, 8 -> 1, 1, 3).
    """
    seeds: List[int] = []
    previous: Optional[Decimal] = None
    for position, total in enumerate(totals, start=1):
        if previous is not None and total == previous:
            seeds.append(seeds[-1])
        else:
            seeds.append(position)
        previous = total
    return seeds


def format_insertion(as_of: Optional[datetime], tz_name: str = DEFAULT_TIMEZONE) -> str:
    """``YYYY-MM-DD HH:MM:SS`` wall-clock time in ``tz_name``; naive datetimes are UTC."""
    moment = as_of or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).strftime(INSERTION_FORMAT)


class TallyHandler:
    def __init__(
        self,
        database: Any,
        *,
        timezone_name: str = DEFAULT_TIMEZONE,
        audit: Optional[ScoringAuditLogger] = None,
    ):
        self.database = database
        self.timezone_name = timezone_name
        self.audit = audit or ScoringAuditLogger()
        self._places = int(get_scoring_params().precision.score_places)

    async def latest_sequence(self, bet_id: int) -> Optional[int]:
        rows = await self.database.read(_SELECT_MAX_SEQUENCE, params={"bet_id": bet_id})
        if not rows or rows[0]["max_sequence"] is None:
            return None
        return int(rows[0]["max_sequence"])

    async def rebuild(self, bet_id: int, as_of: Optional[datetime] = None) -> Dict[str, int]:
        """Write a new tally sequence for the bet and prune older ones.

        Args:
            bet_id: Bet to aggregate
            as_of: Moment stamped on every row of the sequence (default: now)

        Returns:
            ``{"sequence": new_sequence, "count": rows_written}``
        """
        current = await self.latest_sequence(bet_id)
        sequence = (current or 0) + 1
        insertion = format_insertion(as_of, self.timezone_name)

        totals = await self.database.read(_SELECT_TOTALS, params={"bet_id": bet_id})
        points = [round_decimal(to_decimal(r["total"], "total"), self._places) for r in totals]
        seeds = assign_seeds(points)
        rows: List[TallyRow] = [
            {
                "bet_id": bet_id,
                "user_id": int(r["user_id"]),
                "points": float(p),
                "sequence": sequence,
                "seed": seed,
                "insertion": insertion,
            }
            for r, p, seed in zip(totals, points, seeds)
        ]

        if rows:
            await self.database.write_many(_INSERT_TALLY, rows)
        pruned = await self.database.write(
            _DELETE_OLDER_SEQUENCES, params={"bet_id": bet_id, "sequence": sequence}
        )

        self.audit.log_tally_rebuilt(
            bet_id,
            sequence=sequence,
            count=len(rows),
            pruned=pruned,
            tally_hash=compute_hash([[r["user_id"], str(p), r["seed"]] for r, p in zip(rows, points)]),
        )
        return {"sequence": sequence, "count": len(rows)}

    async def fetch(self, bet_id: int, sequence: Optional[int] = None) -> List[Mapping[str, Any]]:
        """Rows of one tally sequence (latest when omitted), in seed order."""
        if sequence is None:
            sequence = await self.latest_sequence(bet_id)
            if sequence is None:
                return []
        return await self.database.read(_SELECT_TALLY, params={"bet_id": bet_id, "sequence": sequence})


__all__ = ["TallyHandler", "assign_seeds", "format_insertion"]
