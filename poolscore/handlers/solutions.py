"""Official solutions and the per-bet scoring pass.

Flow of ``mark_correct_and_score``:
1. Load the bet's questions and every group member (by groupcode)
2. Build the topology once (``poolscore.scoring.topology``)
3. Load official solutions, posted answers and all margin-variant rows
4. Compute decisions with the pure engine
5. Reset and write every (correct, score) pair in one transaction
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import bindparam, text

from poolscore.config.scoring_params import get_scoring_params
from poolscore.scoring.audit import ScoringAuditLogger
from poolscore.scoring.determinism import compute_updates_hash
from poolscore.scoring.engine import compute_scores, decisions_to_updates
from poolscore.scoring.normalize import normalize
from poolscore.scoring.topology import build_plan
from poolscore.scoring.types import InputError
from poolscore.shared.enums import DrawTag, ResultType

logger = logging.getLogger("poolscore.handlers.solutions")


_QUESTION_COLUMNS = """
        q.id,
        q.bet_id,
        q.parent_id,
        q.groupcode,
        q.lineup,
        q.points,
        q.average,
        q.margin,
        q.step,
        rt.label AS result_type
"""

_SELECT_BET_QUESTIONS = text(
    f"""
    SELECT {_QUESTION_COLUMNS}
    FROM question q
    JOIN resulttype rt ON rt.id = q.resulttype_id
    WHERE q.bet_id = :bet_id
    ORDER BY q.id
    """
)

_SELECT_GROUP_QUESTIONS = text(
    f"""
    SELECT {_QUESTION_COLUMNS}
    FROM question q
    JOIN resulttype rt ON rt.id = q.resulttype_id
    WHERE q.groupcode IN :groupcodes
    ORDER BY q.lineup, q.id
    """
).bindparams(bindparam("groupcodes", expanding=True))

_SELECT_SOLUTIONS = text(
    """
    SELECT s.id, s.question_id, s.result, s.listitem_id
    FROM solution s
    WHERE s.question_id IN :question_ids
    ORDER BY s.id
    """
).bindparams(bindparam("question_ids", expanding=True))

_SELECT_POSTED_ANSWERS = text(
    """
    SELECT a.id, a.user_id, a.question_id, a.result, a.label,
           a.listitem_id, a.points, a.posted
    FROM answer a
    JOIN question q ON q.id = a.question_id
    WHERE q.bet_id = :bet_id
      AND a.posted = 1
    ORDER BY a.id
    """
)

_SELECT_MARGIN_ROWS = text(
    """
    SELECT a.id, a.user_id, a.question_id, a.result, a.label,
           a.listitem_id, a.points, a.posted
    FROM answer a
    WHERE a.question_id IN :question_ids
    ORDER BY a.id
    """
).bindparams(bindparam("question_ids", expanding=True))

_RESET_POSTED = text(
    """
    UPDATE answer
    SET correct = 0, score = 0
    WHERE posted = 1
      AND question_id IN (SELECT id FROM question WHERE bet_id = :bet_id)
    """
)

_RESET_MARGIN_ROWS = text(
    """
    UPDATE answer
    SET correct = 0, score = 0
    WHERE question_id IN :question_ids
    """
).bindparams(bindparam("question_ids", expanding=True))

_UPDATE_ANSWER_SCORE = text(
    """
    UPDATE answer
    SET correct = :correct, score = :score
    WHERE id = :answer_id
    """
)

_SELECT_QUESTION = text(
    """
    SELECT q.id, q.bet_id FROM question q WHERE q.id = :question_id
    """
)

_SELECT_LIST_ITEM = text(
    """
    SELECT li.id, li.label FROM list_item li WHERE li.id = :list_item_id
    """
)

_INSERT_SOLUTION = text(
    """
    INSERT INTO solution (question_id, result, listitem_id)
    VALUES (:question_id, :result, :listitem_id)
    """
)

_RESULT_TYPE_ALIASES = {"number": ResultType.DECIMAL, "score": ResultType.FOOTBALL}


def parse_result_type(value: Union[ResultType, str, None]) -> ResultType:
    """Strict result-type parsing for writes; unknown labels are an input error."""
    if isinstance(value, ResultType):
        return value
    label = (value or "").strip().lower()
    if label in _RESULT_TYPE_ALIASES:
        return _RESULT_TYPE_ALIASES[label]
    try:
        return ResultType(label)
    except ValueError:
        raise InputError(f"Unsupported result type: {value!r}")


class SolutionsHandler:
    """Records official solutions and scores bets against them."""

    def __init__(self, database: Any, audit: Optional[ScoringAuditLogger] = None):
        """Initialize the handler.

        Args:
            database: Database manager (DBM instance)
            audit: Optional audit logger
        """
        self.database = database
        self.audit = audit or ScoringAuditLogger()
        params = get_scoring_params()
        self._places = int(params.precision.score_places)
        self._chunk_size = int(params.batch.update_chunk_size)

    async def set_solution(
        self,
        question_id: int,
        result_type: Union[ResultType, str],
        label: Optional[str] = None,
        base_score: Optional[str] = None,
        draw_tag: Union[DrawTag, str, None] = None,
        list_item_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Normalize and store one official solution for a question.

        Several solutions may be recorded for the same question; any of them
        is accepted. Nothing is written when validation fails.

        Raises:
            InputError: unknown question, unsupported type, missing list item
                id or missing label, or a decimal that does not parse
        """
        rt = parse_result_type(result_type)

        rows = await self.database.read(_SELECT_QUESTION, params={"question_id": question_id})
        if not rows:
            raise InputError(f"Unknown question: {question_id}")

        listitem_id: Optional[int] = None
        if rt is ResultType.LIST:
            if not list_item_id:
                raise InputError("list_item_id required for list type")
            items = await self.database.read(_SELECT_LIST_ITEM, params={"list_item_id": list_item_id})
            if not items:
                raise InputError(f"Unknown list item: {list_item_id}")
            listitem_id = int(list_item_id)
            result = str(listitem_id)
        else:
            raw = base_score if rt in (ResultType.FOOTBALL, ResultType.HOCKEY) and base_score is not None else label
            if raw is None or not str(raw).strip():
                raise InputError(f"A label is required for {rt.value} solutions")
            normalized = normalize(rt, raw, draw_tag)
            if normalized.value is None:
                raise InputError(f"Not a number: {raw!r}")
            result = normalized.value

        await self.database.write(
            _INSERT_SOLUTION,
            params={"question_id": question_id, "result": result, "listitem_id": listitem_id},
        )
        logger.info({"solution_set": question_id, "result_type": rt.value, "result": result})
        return {"ok": True, "question_id": question_id, "result": result}

    async def load_plan(self, bet_id: int):
        questions = list(await self.database.read(_SELECT_BET_QUESTIONS, params={"bet_id": bet_id}))
        codes = sorted({
            q["groupcode"] for q in questions
            if q["parent_id"] is None and q["groupcode"] is not None
        })
        if codes:
            seen = {q["id"] for q in questions}
            members = await self.database.read(_SELECT_GROUP_QUESTIONS, params={"groupcodes": codes})
            questions.extend(m for m in members if m["id"] not in seen)
        return build_plan(bet_id, questions)

    async def mark_correct_and_score(self, bet_id: int) -> Dict[str, Any]:
        """Recompute (correct, score) for every answer of a bet.

        Returns:
            Summary with answers updated, winners and the output hash
        """
        started = time.monotonic()
        plan = await self.load_plan(bet_id)
        if not plan.groups:
            self.audit.log_pass_skipped(bet_id, "no_root_questions")
            return {"bet_id": bet_id, "updated": 0, "winners": 0, "hash": None}

        self.audit.log_pass_start(bet_id, roots=len(plan.groups), questions=len(plan.shapes))

        question_ids = sorted(plan.shapes)
        solutions: Dict[int, List[Any]] = {}
        for row in await self.database.read(_SELECT_SOLUTIONS, params={"question_ids": question_ids}):
            solutions.setdefault(int(row["question_id"]), []).append(row)

        posted = await self.database.read(_SELECT_POSTED_ANSWERS, params={"bet_id": bet_id})
        margin_qids = list(plan.margin_question_ids)
        margin_rows: List[Any] = []
        if margin_qids:
            margin_rows = await self.database.read(_SELECT_MARGIN_ROWS, params={"question_ids": margin_qids})

        decisions = compute_scores(plan, solutions, posted, margin_rows, places=self._places)
        updates = decisions_to_updates(decisions)

        async with self.database.transaction() as conn:
            await conn.execute(_RESET_POSTED, {"bet_id": bet_id})
            if margin_qids:
                await conn.execute(_RESET_MARGIN_ROWS, {"question_ids": margin_qids})
            for start in range(0, len(updates), self._chunk_size):
                chunk = updates[start:start + self._chunk_size]
                await conn.execute(_UPDATE_ANSWER_SCORE, chunk)

        output_hash = compute_updates_hash(decisions)
        winners = sum(1 for d in decisions if d.correct)
        self.audit.log_pass_complete(
            bet_id,
            answers_updated=len(updates),
            winners=winners,
            output_hash=output_hash,
            duration_seconds=time.monotonic() - started,
        )
        return {"bet_id": bet_id, "updated": len(updates), "winners": winners, "hash": output_hash}


__all__ = ["SolutionsHandler", "parse_result_type"]
