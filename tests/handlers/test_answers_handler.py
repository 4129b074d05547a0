from unittest.mock import MagicMock

import pytest
from sqlalchemy import text

from poolscore.handlers.answers import AnswersHandler
from poolscore.scoring.types import InputError
from poolscore.shared.enums import ResultType

_SELECT_ROWS = text(
    """
    SELECT user_id, question_id, result, label, listitem_id, points, posted
    FROM answer
    ORDER BY user_id, posted DESC, id
    """
)


def _question(**overrides):
    q = {"id": 1, "bet_id": 1, "points": 10, "margin": None, "step": None, "result_type": "open"}
    q.update(overrides)
    return q


class TestBuildRows:
    def setup_method(self):
        self.handler = AnswersHandler(MagicMock())

    def test_decimal_margin_variants(self):
        q = _question(result_type="decimal", margin=2, step=0.5)

        rows = self.handler.build_rows(q, {"label": "10,5"}, {})

        assert rows[0] == {"result": "10.5", "label": "10,5", "posted": 1, "listitem_id": None, "points": 0.0}
        assert [r["result"] for r in rows[1:]] == ["9.5", "10", "11", "11.5"]
        assert [r["label"] for r in rows[1:]] == ["9,5", "10,0", "11,0", "11,5"]
        assert all(r["posted"] == 0 for r in rows[1:])

    def test_time_variants_stop_at_zero(self):
        q = _question(result_type="time", margin=2, step=1)

        rows = self.handler.build_rows(q, {"label": "0:00:01"}, {})

        assert rows[0]["result"] == "1"
        assert [r["result"] for r in rows[1:]] == ["0", "2", "3"]
        assert rows[1]["label"] == "00:00:00"

    def test_step_count_is_clipped(self):
        self.handler._margin = self.handler._margin.model_copy(update={"max_step_count": 1})
        q = _question(result_type="mcm", margin=10, step=5)

        rows = self.handler.build_rows(q, {"label": "2,00"}, {})

        assert [r["result"] for r in rows] == ["200", "195", "205"]

    def test_time_without_margin_is_single_row(self):
        rows = self.handler.build_rows(_question(result_type="time"), {"label": "1:00:00"}, {})
        assert rows == [{"result": "3600", "label": "1:00:00", "listitem_id": None, "points": 10.0, "posted": 1}]

    def test_list_uses_item_label(self):
        q = _question(result_type="list")
        rows = self.handler.build_rows(q, {"list_item_id": 4}, {4: "Ajax"})
        assert rows[0]["result"] == "Ajax"
        assert rows[0]["listitem_id"] == 4

    def test_score_with_draw_tag(self):
        q = _question(result_type="football")
        rows = self.handler.build_rows(q, {"label": "2-2", "draw_tag": "uwns"}, {})
        assert rows[0]["result"] == "2-2 uwns"

    @pytest.mark.parametrize(
        "q, submission",
        [
            (_question(result_type="list"), {}),
            (_question(result_type="list"), {"list_item_id": 99}),
            (_question(result_type="open"), {}),
            (_question(result_type="decimal"), {"label": "abc"}),
            (_question(result_type="football"), {"label": "1-1", "draw_tag": "xyz"}),
        ],
    )
    def test_invalid_submissions(self, q, submission):
        with pytest.raises(InputError):
            self.handler.build_rows(q, submission, {})


class TestSubmit:
    @pytest.mark.asyncio
    async def test_stakes_equalized_across_users(self, dbm, seeder):
        bet = await seeder.bet()
        u1, u2 = await seeder.users(2)
        qid = await seeder.question(bet, groupcode=1, result_type=ResultType.DECIMAL, margin=1, step=1, points=6)
        handler = AnswersHandler(dbm)

        await handler.submit(bet, u1, [{"question_id": qid, "label": "10"}])
        result = await handler.submit(bet, u2, [{"question_id": qid, "label": "11"}])

        assert result == {"bet_id": bet, "user_id": u2, "saved": 1, "rows": 3}
        points = {(r["user_id"], r["result"]): r["points"] for r in await dbm.read(_SELECT_ROWS)}
        # 10 and 11 are held by both users, 9 and 12 by one each
        assert points[(u1, "10")] == pytest.approx(3.0)
        assert points[(u2, "11")] == pytest.approx(3.0)
        assert points[(u1, "9")] == pytest.approx(6.0)
        assert points[(u2, "12")] == pytest.approx(6.0)

    @pytest.mark.asyncio
    async def test_resubmission_replaces_rows(self, dbm, seeder):
        bet = await seeder.bet()
        user = await seeder.user()
        qid = await seeder.question(bet, groupcode=1)
        handler = AnswersHandler(dbm)

        await handler.submit(bet, user, [{"question_id": qid, "label": "  Ajax "}])
        await handler.submit(bet, user, [{"question_id": qid, "label": "PSV"}])

        rows = await dbm.read(_SELECT_ROWS)
        assert [(r["result"], r["posted"]) for r in rows] == [("PSV", 1)]

    @pytest.mark.asyncio
    async def test_rejects_question_of_other_bet(self, dbm, seeder):
        bet = await seeder.bet()
        other = await seeder.bet(label="Round 2")
        user = await seeder.user()
        qid = await seeder.question(other, groupcode=1)

        with pytest.raises(InputError):
            await AnswersHandler(dbm).submit(bet, user, [{"question_id": qid, "label": "x"}])
        assert await dbm.read(_SELECT_ROWS) == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, dbm):
        result = await AnswersHandler(dbm).submit(1, 1, [])
        assert result["saved"] == 0
