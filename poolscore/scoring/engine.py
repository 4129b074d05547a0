"""Correctness and scoring engine.

Pure computation: given a bet's topology, its official solutions and the
answer rows, decide ``(correct, score)`` for every answer. The handler in
``poolscore.handlers.solutions`` owns reading and writing.

Rules, in order:
    1. Singles: winners split the question's points evenly.
    2. Bundles: the root wins only if the root and every sub match; winners
       split the root's points; sub answers always score 0.
    3. Margin: per (user, question) exactly one matching row wins, the posted
       row first, else the first matching variant; it scores its own points.
    4. Bonuses: only users whose root won, and whose every bonus answer in the
       group matches, share the pot; each winner's first bonus carries it.
Anything not awarded is written as (0, 0).
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set

from .determinism import round_decimal, sort_by_id, to_decimal
from .keys import CanonicalKey, key_for_stored, official_key_set
from poolscore.shared.rows import AnswerRow, ScoreUpdate, SolutionRow

from .types import DECIMAL_PLACES, BetPlan, BundleRoot, ScoreDecision, Single

ZERO = Decimal("0")


class _Scorer:
    def __init__(
        self,
        plan: BetPlan,
        solutions: Mapping[int, Sequence[Mapping[str, Any]]],
        places: int,
    ):
        self.plan = plan
        self.places = places
        self.official: Dict[int, frozenset] = {
            qid: official_key_set(plan.result_type(qid), sols)
            for qid, sols in solutions.items()
        }
        self.decisions: Dict[int, ScoreDecision] = {}
        self.winners_by_question: Dict[int, Set[int]] = defaultdict(set)

    def key(self, row: Mapping[str, Any]) -> CanonicalKey:
        qid = int(row["question_id"])
        return key_for_stored(
            self.plan.result_type(qid),
            result=row.get("result"),
            listitem_id=row.get("listitem_id"),
        )

    def matches(self, row: Mapping[str, Any]) -> bool:
        official = self.official.get(int(row["question_id"]), frozenset())
        return self.key(row).matches(official)

    def put(self, row: Mapping[str, Any], correct: bool, score: Decimal) -> None:
        aid = int(row["id"])
        self.decisions[aid] = ScoreDecision(
            answer_id=aid,
            correct=correct,
            score=round_decimal(score, self.places) if correct else round_decimal(ZERO, self.places),
        )
        if correct:
            self.winners_by_question[int(row["question_id"])].add(int(row["user_id"]))

    def split(self, rows: List[Mapping[str, Any]], points: Decimal) -> None:
        if not rows:
            return
        share = points / Decimal(len(rows))
        for row in rows:
            self.put(row, True, share)


def _first_per_user(rows: Iterable[Mapping[str, Any]]) -> Dict[int, Mapping[str, Any]]:
    out: Dict[int, Mapping[str, Any]] = {}
    for row in rows:
        out.setdefault(int(row["user_id"]), row)
    return out


def compute_scores(
    plan: BetPlan,
    solutions: Mapping[int, Sequence[SolutionRow]],
    posted: Sequence[AnswerRow],
    margin_rows: Sequence[AnswerRow] = (),
    *,
    places: int = DECIMAL_PLACES,
) -> List[ScoreDecision]:
    """Score one bet. Returns one decision per posted answer and margin row, by answer id."""
    if not plan.groups and not plan.shapes:
        return []

    scorer = _Scorer(plan, solutions, places)
    posted = sort_by_id(posted)
    margin_rows = sort_by_id(margin_rows)

    posted_by_q: Dict[int, List[Mapping[str, Any]]] = defaultdict(list)
    for row in posted:
        posted_by_q[int(row["question_id"])].append(row)

    # Singles
    for qid in sorted(posted_by_q):
        shape = plan.shapes.get(qid)
        if isinstance(shape, Single):
            scorer.split([r for r in posted_by_q[qid] if scorer.matches(r)], shape.points)

    # Bundles
    for group in plan.groups:
        shape = plan.shapes.get(group.root_id)
        if not isinstance(shape, BundleRoot):
            continue
        subs_by_q = {sid: _first_per_user(posted_by_q.get(sid, ())) for sid in shape.subs}
        winners = []
        for uid, root_row in _first_per_user(posted_by_q.get(group.root_id, ())).items():
            if not scorer.matches(root_row):
                continue
            sub_rows = [subs_by_q[sid].get(uid) for sid in shape.subs]
            if all(r is not None and scorer.matches(r) for r in sub_rows):
                winners.append(root_row)
        scorer.split(winners, shape.points)

    # Margin
    margin_qids = set(plan.margin_question_ids)
    by_user_q: Dict[tuple, List[Mapping[str, Any]]] = defaultdict(list)
    for row in margin_rows:
        qid = int(row["question_id"])
        if qid in margin_qids:
            by_user_q[(int(row["user_id"]), qid)].append(row)
    for user_q in sorted(by_user_q):
        candidates = [r for r in by_user_q[user_q] if scorer.matches(r)]
        if not candidates:
            continue
        chosen = next((r for r in candidates if int(r.get("posted") or 0) == 1), candidates[0])
        points = chosen.get("points")
        scorer.put(chosen, True, to_decimal(points if points is not None else 0, "points"))

    # Bonuses
    for group in plan.groups:
        if not group.bonuses:
            continue
        eligible = scorer.winners_by_question.get(group.root_id, set())
        bonus_rows = {bid: _first_per_user(posted_by_q.get(bid, ())) for bid in group.bonuses}
        winners = []
        for uid in sorted(eligible):
            rows = [bonus_rows[bid].get(uid) for bid in group.bonuses]
            if all(r is not None and scorer.matches(r) for r in rows):
                winners.append(rows[0])
        scorer.split(winners, group.bonus_pot)

    for row in list(posted) + list(margin_rows):
        aid = int(row["id"])
        if aid not in scorer.decisions:
            scorer.put(row, False, ZERO)

    return [scorer.decisions[aid] for aid in sorted(scorer.decisions)]


def decisions_to_updates(decisions: Iterable[ScoreDecision]) -> List[ScoreUpdate]:
    """Rows for the batch update statement."""
    return [
        {"answer_id": d.answer_id, "correct": 1 if d.correct else 0, "score": float(d.score)}
        for d in decisions
    ]


__all__ = ["compute_scores", "decisions_to_updates"]
