import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from poolscore.handlers.pipeline import BetLockRegistry, ScoringPipeline
from poolscore.scoring.types import InputError, ScoringError


class TestBetLockRegistry:
    def test_one_lock_per_bet(self):
        locks = BetLockRegistry()
        assert locks.lock_for(1) is locks.lock_for(1)
        assert locks.lock_for(1) is not locks.lock_for(2)
        assert len(locks) == 2
        assert locks.locked(3) is False

    @pytest.mark.asyncio
    async def test_same_bet_is_serialized(self):
        pipeline = ScoringPipeline(MagicMock(), audit=MagicMock())
        order = []

        async def fake_score(bet_id):
            order.append(("start", bet_id))
            await asyncio.sleep(0.01)
            order.append(("end", bet_id))
            return {"bet_id": bet_id}

        pipeline.solutions.mark_correct_and_score = AsyncMock(side_effect=fake_score)
        pipeline.tally.rebuild = AsyncMock(return_value={"sequence": 1, "count": 0})

        await asyncio.gather(pipeline.process_bet(7), pipeline.process_bet(7))

        assert order == [("start", 7), ("end", 7), ("start", 7), ("end", 7)]


class TestProcessBet:
    @pytest.mark.asyncio
    async def test_store_failure_is_wrapped(self):
        audit = MagicMock()
        pipeline = ScoringPipeline(MagicMock(), audit=audit)
        cause = OperationalError("UPDATE answer", {}, Exception("disk I/O error"))
        pipeline.solutions.mark_correct_and_score = AsyncMock(side_effect=cause)

        with pytest.raises(ScoringError) as exc_info:
            await pipeline.process_bet(3)

        assert exc_info.value.bet_id == 3
        assert exc_info.value.__cause__ is cause
        audit.log_error.assert_called_once()

    @pytest.mark.asyncio
    async def test_input_errors_pass_through(self):
        pipeline = ScoringPipeline(MagicMock(), audit=MagicMock())
        pipeline.answers.submit = AsyncMock(side_effect=InputError("bad label"))

        with pytest.raises(InputError):
            await pipeline.submit_answers(1, 1, [{"question_id": 1}])
        assert pipeline.locks.locked(1) is False

    @pytest.mark.asyncio
    async def test_end_to_end(self, dbm, seeder):
        bet = await seeder.bet()
        u1, u2 = await seeder.users(2)
        qid = await seeder.question(bet, groupcode=1, points=10)
        pipeline = ScoringPipeline(dbm)

        await pipeline.set_solution(qid, "open", label="Ajax")
        await pipeline.submit_answers(bet, u1, [{"question_id": qid, "label": "Ajax"}])
        result = await pipeline.submit_answers(
            bet, u2, [{"question_id": qid, "label": "PSV"}],
            as_of=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )

        assert result["submitted"]["saved"] == 1
        assert result["scored"]["winners"] == 1
        assert result["tally"] == {"sequence": 2, "count": 2}
        rows = await pipeline.tally.fetch(bet)
        assert [(r["user_id"], r["points"], r["seed"]) for r in rows] == [(u1, 10.0, 1), (u2, 0.0, 2)]
