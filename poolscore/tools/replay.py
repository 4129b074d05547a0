#!/usr/bin/env python3
"""Replay scoring against an isolated copy of the store and diff the result.

Re-runs ``mark_correct_and_score`` and ``rebuild`` for the given bets, then
snapshots every ``(answer_id, correct, score)`` triple and the tally rows,
hashes them and compares with a previously captured baseline.

Usage:
    # Capture a baseline
    python -m poolscore.tools.replay --target-url sqlite+aiosqlite:///copy.db \\
        --bet 12 --bet 13 --write-baseline baseline.json

    # Verify a later run against it (exit status 1 on any difference)
    python -m poolscore.tools.replay --target-url sqlite+aiosqlite:///copy.db \\
        --bet 12 --bet 13 --baseline baseline.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from sqlalchemy import text

from poolscore.database import initialize
from poolscore.database.dbm import DBM
from poolscore.handlers.pipeline import ScoringPipeline
from poolscore.scoring.determinism import compute_hash, round_decimal, to_decimal
from poolscore.config.settings import load_settings
from poolscore.shared.logging import configure_from_settings

logger = logging.getLogger("poolscore.tools.replay")

_SELECT_BET_ANSWERS = text(
    """
    SELECT a.id, a.correct, a.score
    FROM answer a
    JOIN question q ON q.id = a.question_id
    WHERE q.bet_id = :bet_id
    ORDER BY a.id
    """
)

_SELECT_BET_TALLY = text(
    """
    SELECT user_id, points, seed
    FROM bet_tally
    WHERE bet_id = :bet_id
      AND sequence = (SELECT MAX(sequence) FROM bet_tally WHERE bet_id = :bet_id)
    ORDER BY seed ASC, user_id ASC
    """
)


def _score(value: Any) -> str:
    return format(round_decimal(to_decimal(value if value is not None else 0, "score")), "f")


async def snapshot_bet(database: DBM, bet_id: int) -> Dict[str, Any]:
    answers = [
        [int(r["id"]), int(r["correct"] or 0), _score(r["score"])]
        for r in await database.read(_SELECT_BET_ANSWERS, params={"bet_id": bet_id})
    ]
    tally = [
        [int(r["user_id"]), _score(r["points"]), int(r["seed"])]
        for r in await database.read(_SELECT_BET_TALLY, params={"bet_id": bet_id})
    ]
    return {
        "answers": answers,
        "tally": tally,
        "hash": compute_hash({"answers": answers, "tally": tally}),
    }


def diff_snapshots(baseline: Dict[str, Any], current: Dict[str, Any]) -> List[str]:
    """Human-readable differences between two per-bet snapshots."""
    problems: List[str] = []
    for bet, snap in sorted(current.items(), key=lambda kv: int(kv[0])):
        base = baseline.get(bet)
        if base is None:
            problems.append(f"bet {bet}: missing from baseline")
            continue
        if base.get("hash") == snap["hash"]:
            continue
        found: List[str] = []
        before = {row[0]: row for row in base.get("answers", [])}
        after = {row[0]: row for row in snap["answers"]}
        for answer_id in sorted(set(before) | set(after)):
            if before.get(answer_id) != after.get(answer_id):
                found.append(f"bet {bet}: answer {answer_id} {before.get(answer_id)} -> {after.get(answer_id)}")
        if base.get("tally", []) != snap["tally"]:
            found.append(f"bet {bet}: tally differs")
        problems.extend(found or [f"bet {bet}: hash differs"])
    return problems


async def replay(
    target_url: str,
    bets: Sequence[int],
    as_of: Optional[datetime] = None,
) -> Dict[str, Any]:
    database = DBM(target_url)
    try:
        pipeline = ScoringPipeline(database)
        snapshots: Dict[str, Any] = {}
        for bet_id in bets:
            await pipeline.process_bet(bet_id, as_of)
            snapshots[str(bet_id)] = await snapshot_bet(database, bet_id)
            logger.info({"replayed_bet": bet_id, "hash": snapshots[str(bet_id)]["hash"][:16] + "..."})
        return snapshots
    finally:
        await database.dispose()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay scoring for bets and diff against a baseline")
    parser.add_argument(
        "--target-url",
        default=os.getenv("POOLSCORE_REPLAY_URL"),
        help="SQLAlchemy async URL of the isolated copy (env: POOLSCORE_REPLAY_URL)",
    )
    parser.add_argument("--bet", type=int, action="append", required=True, help="Bet id (repeatable)")
    parser.add_argument("--baseline", type=Path, help="Baseline JSON to compare against")
    parser.add_argument("--write-baseline", type=Path, help="Write the snapshot as a new baseline")
    parser.add_argument("--migrate", action="store_true", help="Run alembic upgrade head on the target first")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    settings = load_settings()
    configure_from_settings(settings, "DEBUG" if args.verbose else None)
    target_url = args.target_url or settings.database.url

    if not target_url:
        print("error: --target-url (or POOLSCORE_REPLAY_URL / POOLSCORE_DATABASE__URL) is required", file=sys.stderr)
        return 2

    if args.migrate:
        initialize(target_url)

    snapshots = asyncio.run(replay(target_url, args.bet, datetime.now(timezone.utc)))

    if args.write_baseline:
        args.write_baseline.write_text(json.dumps(snapshots, indent=2, sort_keys=True))
        print(f"baseline written: {args.write_baseline} ({len(snapshots)} bets)")

    if args.baseline:
        baseline = json.loads(args.baseline.read_text())
        problems = diff_snapshots(baseline, snapshots)
        if problems:
            for line in problems:
                print(line)
            print(f"{len(problems)} difference(s)")
            return 1
        print(f"no differences ({len(snapshots)} bets)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
