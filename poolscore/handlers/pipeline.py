"""Scoring pipeline: submission, re-scoring and re-tally for one bet.

Passes over the same bet are serialized with one ``asyncio.Lock`` per bet
id; different bets run concurrently. Readers never take the lock.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from poolscore.scoring.audit import ScoringAuditLogger
from poolscore.scoring.types import InputError, ScoringError

from .answers import AnswersHandler
from .solutions import SolutionsHandler
from .tally import DEFAULT_TIMEZONE, TallyHandler

logger = logging.getLogger("poolscore.handlers.pipeline")


class BetLockRegistry:
    """Lazily created per-bet locks."""

    def __init__(self) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}

    def lock_for(self, bet_id: int) -> asyncio.Lock:
        lock = self._locks.get(bet_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[bet_id] = lock
        return lock

    def locked(self, bet_id: int) -> bool:
        lock = self._locks.get(bet_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


class ScoringPipeline:
    def __init__(
        self,
        database: Any,
        *,
        timezone_name: str = DEFAULT_TIMEZONE,
        audit: Optional[ScoringAuditLogger] = None,
        locks: Optional[BetLockRegistry] = None,
    ):
        self.database = database
        self.audit = audit or ScoringAuditLogger()
        self.locks = locks or BetLockRegistry()
        self.answers = AnswersHandler(database)
        self.solutions = SolutionsHandler(database, audit=self.audit)
        self.tally = TallyHandler(database, timezone_name=timezone_name, audit=self.audit)

    @classmethod
    def from_settings(cls, database: Any, settings: Any) -> "ScoringPipeline":
        return cls(database, timezone_name=settings.standings.display_timezone)

    async def _run(self, bet_id: int, as_of: Optional[datetime]) -> Dict[str, Any]:
        try:
            scored = await self.solutions.mark_correct_and_score(bet_id)
            tally = await self.tally.rebuild(bet_id, as_of)
        except (InputError, ScoringError):
            raise
        except Exception as e:
            self.audit.log_error("process_bet", bet_id, e)
            raise ScoringError(f"scoring pass failed for bet {bet_id}: {e}", bet_id=bet_id) from e
        return {"bet_id": bet_id, "scored": scored, "tally": tally}

    async def process_bet(self, bet_id: int, as_of: Optional[datetime] = None) -> Dict[str, Any]:
        """Re-score the bet and write a new tally sequence.

        Raises:
            ScoringError: if a store call fails (original exception chained)
        """
        async with self.locks.lock_for(bet_id):
            return await self._run(bet_id, as_of)

    async def submit_answers(
        self,
        bet_id: int,
        user_id: int,
        submissions: Iterable[Mapping[str, Any]],
        as_of: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        async with self.locks.lock_for(bet_id):
            saved = await self.answers.submit(bet_id, user_id, submissions)
            result = await self._run(bet_id, as_of)
        result["submitted"] = saved
        return result

    async def set_solution(self, question_id: int, result_type: Any, **payload: Any) -> Dict[str, Any]:
        return await self.solutions.set_solution(question_id, result_type, **payload)


__all__ = ["BetLockRegistry", "ScoringPipeline"]
