"""Structured audit logging for scoring and tally passes.

Every pass logs its start and completion with a hash of what it wrote,
so two runs over the same data (or a replay against another store) can be
compared from the logs alone.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from poolscore.shared.logging import EVENTS_LEVEL_NUM


def _short(digest: str) -> str:
    return digest[:16] + "..."


class ScoringAuditLogger:
    """Structured logger for the scoring audit trail."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("poolscore.scoring.audit")
        self.events = logging.getLogger("poolscore.event")

    def _event(self, payload: Dict[str, Any]) -> None:
        self.events.log(EVENTS_LEVEL_NUM, payload)

    def log_pass_start(self, bet_id: int, roots: int, questions: int) -> None:
        self.logger.info({
            "event": "score_pass_start",
            "bet_id": bet_id,
            "roots": roots,
            "questions": questions,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def log_pass_complete(
        self,
        bet_id: int,
        answers_updated: int,
        winners: int,
        output_hash: str,
        duration_seconds: float,
    ) -> None:
        """Log scoring completion.

        Args:
            bet_id: Bet that was scored
            answers_updated: Number of (correct, score) pairs written
            winners: How many of them were marked correct
            output_hash: Hash of the written triples
            duration_seconds: Pass duration
        """
        payload = {
            "event": "score_pass_complete",
            "bet_id": bet_id,
            "answers_updated": answers_updated,
            "winners": winners,
            "output_hash": _short(output_hash),
            "duration_seconds": round(duration_seconds, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.logger.info(payload)
        self._event(payload)

    def log_pass_skipped(self, bet_id: int, reason: str) -> None:
        self.logger.info({
            "event": "score_pass_skipped",
            "bet_id": bet_id,
            "reason": reason,
        })

    def log_tally_rebuilt(
        self,
        bet_id: int,
        sequence: int,
        count: int,
        pruned: int,
        tally_hash: str,
    ) -> None:
        payload = {
            "event": "tally_rebuilt",
            "bet_id": bet_id,
            "sequence": sequence,
            "count": count,
            "pruned": pruned,
            "tally_hash": _short(tally_hash),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.logger.info(payload)
        self._event(payload)

    def log_error(self, operation: str, bet_id: int, error: Exception) -> None:
        self.logger.error({
            "event": "error",
            "operation": operation,
            "bet_id": bet_id,
            "error_type": type(error).__name__,
            "error": str(error),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })


__all__ = ["ScoringAuditLogger"]
