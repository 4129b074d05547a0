"""Answer submission.

A submission replaces the user's previous rows for each question. Margin
questions store the posted row plus generated variant rows (``posted=0``);
afterwards the stake of every margin row is equalized across all users who
hold the same value.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import bindparam, text

from poolscore.config.scoring_params import get_scoring_params
from poolscore.scoring.determinism import round_decimal, safe_divide, to_decimal
from poolscore.scoring.normalize import (
    build_variants,
    decimals_from_step,
    display_from_mcm,
    display_from_seconds,
    format_label_comma,
    format_result_dot,
    normalize,
)
from poolscore.scoring.topology import is_margin_question
from poolscore.scoring.types import InputError
from poolscore.shared.enums import ResultType

logger = logging.getLogger("poolscore.handlers.answers")


_SELECT_QUESTIONS = text(
    """
    SELECT q.id, q.bet_id, q.points, q.margin, q.step, rt.label AS result_type
    FROM question q
    JOIN resulttype rt ON rt.id = q.resulttype_id
    WHERE q.id IN :question_ids
    """
).bindparams(bindparam("question_ids", expanding=True))

_SELECT_LIST_ITEMS = text(
    """
    SELECT li.id, li.label FROM list_item li WHERE li.id IN :ids
    """
).bindparams(bindparam("ids", expanding=True))

_DELETE_USER_ANSWERS = text(
    """
    DELETE FROM answer
    WHERE question_id = :question_id
      AND user_id = :user_id
    """
)

_INSERT_ANSWER = text(
    """
    INSERT INTO answer (
        user_id, question_id, result, label, listitem_id, points, posted, correct, score
    ) VALUES (
        :user_id, :question_id, :result, :label, :listitem_id, :points, :posted, 0, 0
    )
    """
)

_COUNT_BY_RESULT = text(
    """
    SELECT a.result, COUNT(*) AS n
    FROM answer a
    WHERE a.question_id = :question_id
    GROUP BY a.result
    """
)

_UPDATE_POINTS_FOR_RESULT = text(
    """
    UPDATE answer
    SET points = :points
    WHERE question_id = :question_id
      AND result = :result
    """
)


def _question_points(q: Mapping[str, Any]) -> float:
    return float(q["points"] or 0)


class AnswersHandler:
    """Stores user submissions in canonical form."""

    def __init__(self, database: Any):
        self.database = database
        self._margin = get_scoring_params().margin

    def _step_count(self, q: Mapping[str, Any]) -> int:
        count = int(round(abs(float(q["margin"]))))
        return max(0, min(count, int(self._margin.max_step_count)))

    def margin_rows(
        self,
        q: Mapping[str, Any],
        rt: ResultType,
        center_result: str,
        center_label: str,
    ) -> List[Dict[str, Any]]:
        """Posted center row followed by generated variants in ascending value order."""
        step = abs(to_decimal(q["step"], "step"))
        count = self._step_count(q)

        if rt is ResultType.DECIMAL:
            places = decimals_from_step(step)
            variants = [
                (format_result_dot(v, places), format_label_comma(v, places))
                for v in build_variants(center_result, count, step, places)
            ]
        else:
            minimum_step = self._margin.min_time_step_seconds if rt is ResultType.TIME else self._margin.min_mcm_step_cm
            step = max(step, Decimal(minimum_step))
            render = display_from_seconds if rt is ResultType.TIME else display_from_mcm
            variants = [
                (str(int(v)), render(v))
                for v in build_variants(center_result, count, step, 0, minimum=0)
            ]

        rows = [{"result": center_result, "label": center_label, "posted": 1}]
        for result, label in variants:
            if result != center_result:
                rows.append({"result": result, "label": label, "posted": 0})
        return rows

    def build_rows(
        self,
        q: Mapping[str, Any],
        submission: Mapping[str, Any],
        list_items: Mapping[int, str],
    ) -> List[Dict[str, Any]]:
        """Turn one submission into answer rows (without user/question ids)."""
        rt = ResultType.from_label(q["result_type"])
        points = _question_points(q)

        if rt is ResultType.LIST:
            item_id = submission.get("list_item_id")
            if item_id is None:
                raise InputError(f"list_item_id required for question {q['id']}")
            if int(item_id) not in list_items:
                raise InputError(f"Unknown list item: {item_id}")
            label = list_items[int(item_id)]
            return [{"result": label, "label": label, "listitem_id": int(item_id), "points": points, "posted": 1}]

        raw = submission.get("label")
        if raw is None:
            raise InputError(f"label required for question {q['id']}")
        raw = str(raw)
        normalized = normalize(rt, raw, submission.get("draw_tag"))
        if normalized.value is None:
            raise InputError(f"Not a number for question {q['id']}: {raw!r}")

        if rt.supports_margin:
            user_label = raw.strip()
            if is_margin_question(q):
                rows = self.margin_rows(q, rt, normalized.value, user_label)
                for row in rows:
                    row.update(listitem_id=None, points=0.0)
                return rows
            return [{"result": normalized.value, "label": user_label, "listitem_id": None, "points": points, "posted": 1}]

        if rt in (ResultType.FOOTBALL, ResultType.HOCKEY):
            return [{"result": normalized.value, "label": raw.strip(), "listitem_id": None, "points": points, "posted": 1}]

        return [{"result": normalized.value, "label": normalized.label, "listitem_id": None, "points": points, "posted": 1}]

    async def submit(
        self,
        bet_id: int,
        user_id: int,
        submissions: Iterable[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        """Store a batch of submissions for one user.

        All submissions are validated before anything is written, and the
        writes run in a single transaction.

        Raises:
            InputError: unknown question, question outside the bet, missing
                label or list item, or a number that does not parse
        """
        submissions = list(submissions)
        if not submissions:
            return {"bet_id": bet_id, "user_id": user_id, "saved": 0, "rows": 0}

        question_ids = sorted({int(s["question_id"]) for s in submissions})
        questions = {
            int(q["id"]): q
            for q in await self.database.read(_SELECT_QUESTIONS, params={"question_ids": question_ids})
        }
        for qid in question_ids:
            q = questions.get(qid)
            if q is None:
                raise InputError(f"Unknown question: {qid}")
            if int(q["bet_id"]) != int(bet_id):
                raise InputError(f"Question {qid} does not belong to bet {bet_id}")

        item_ids = sorted({
            int(s["list_item_id"]) for s in submissions if s.get("list_item_id") is not None
        })
        list_items: Dict[int, str] = {}
        if item_ids:
            for row in await self.database.read(_SELECT_LIST_ITEMS, params={"ids": item_ids}):
                list_items[int(row["id"])] = row["label"]

        planned: Dict[int, List[Dict[str, Any]]] = {}
        for sub in submissions:
            qid = int(sub["question_id"])
            planned[qid] = self.build_rows(questions[qid], sub, list_items)

        margin_qids = sorted(qid for qid in planned if is_margin_question(questions[qid]))
        inserted = 0
        async with self.database.transaction() as conn:
            for qid in sorted(planned):
                await conn.execute(_DELETE_USER_ANSWERS, {"question_id": qid, "user_id": user_id})
                rows = [dict(r, user_id=user_id, question_id=qid) for r in planned[qid]]
                await conn.execute(_INSERT_ANSWER, rows)
                inserted += len(rows)

            for qid in margin_qids:
                await self._equalize_stakes(conn, qid, _question_points(questions[qid]))

        logger.info({
            "answers_submitted": bet_id,
            "user_id": user_id,
            "questions": len(planned),
            "rows": inserted,
        })
        return {"bet_id": bet_id, "user_id": user_id, "saved": len(planned), "rows": inserted}

    async def _equalize_stakes(self, conn: Any, question_id: int, points: float) -> None:
        """points / number of rows holding the same result, over all users."""
        places = get_scoring_params().precision.score_places
        result = await conn.execute(_COUNT_BY_RESULT, {"question_id": question_id})
        updates = []
        for row in result.mappings().all():
            if row["result"] is None:
                continue
            share = safe_divide(to_decimal(points, "points"), Decimal(int(row["n"])))
            updates.append({
                "question_id": question_id,
                "result": row["result"],
                "points": float(round_decimal(share, places)),
            })
        if updates:
            await conn.execute(_UPDATE_POINTS_FOR_RESULT, updates)


__all__ = ["AnswersHandler"]
