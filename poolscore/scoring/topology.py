"""Question topology of a bet.

Every question a scoring pass touches is classified exactly once into a
``Shape``. Roots are the bet's questions without a parent; the other
members of a root's groupcode are subs (zero points) or bonuses.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from poolscore.shared.enums import ResultType
from poolscore.shared.rows import QuestionRow

from .determinism import to_decimal
from .types import BetPlan, Bonus, BundleRoot, Group, Margin, Shape, Single, Sub


def _points(q: Mapping[str, Any]) -> Decimal:
    raw = q.get("points")
    return to_decimal(raw if raw is not None else 0, "points")


def is_margin_question(q: Mapping[str, Any]) -> bool:
    """True for time/decimal/mcm questions with both margin and step configured."""
    rt = ResultType.from_label(q.get("result_type"))
    if not rt.supports_margin:
        return False
    margin, step = q.get("margin"), q.get("step")
    if margin is None or step is None:
        return False
    return float(margin) > 0 and float(step) > 0


def _leaf_shape(q: Mapping[str, Any]) -> Shape:
    if is_margin_question(q):
        return Margin(question_id=int(q["id"]), points=_points(q))
    return Single(question_id=int(q["id"]), points=_points(q))


def _lineup_order(q: Mapping[str, Any]):
    lineup = q.get("lineup")
    return (lineup if lineup is not None else 0, int(q["id"]))


def build_plan(bet_id: int, questions: Iterable[QuestionRow]) -> BetPlan:
    """Classify the bet's questions (plus any group members loaded by groupcode)."""
    by_id: Dict[int, Mapping[str, Any]] = {}
    for q in questions:
        by_id[int(q["id"])] = q

    result_types = {qid: ResultType.from_label(q.get("result_type")) for qid, q in by_id.items()}
    roots = sorted(
        (q for q in by_id.values() if q.get("parent_id") is None and int(q.get("bet_id", bet_id)) == bet_id),
        key=lambda q: int(q["id"]),
    )
    root_ids = {int(q["id"]) for q in roots}

    shapes: Dict[int, Shape] = {}
    groups: List[Group] = []
    for root in roots:
        rid = int(root["id"])
        code = root.get("groupcode")
        members = []
        if code is not None:
            members = sorted(
                (
                    q for q in by_id.values()
                    if q.get("groupcode") == code
                    and int(q["id"]) not in root_ids
                    and int(q["id"]) not in shapes
                ),
                key=_lineup_order,
            )

        subs: List[int] = []
        bonuses: List[int] = []
        pot = Decimal("0")
        for m in members:
            mid = int(m["id"])
            points = _points(m)
            if points == 0:
                subs.append(mid)
                shapes[mid] = Sub(question_id=mid, root_id=rid)
            else:
                bonuses.append(mid)
                pot += points
                shapes[mid] = Bonus(question_id=mid, root_id=rid, points=points)

        if subs:
            shapes[rid] = BundleRoot(question_id=rid, points=_points(root), subs=tuple(subs))
        else:
            shapes[rid] = _leaf_shape(root)
        groups.append(
            Group(
                root_id=rid,
                groupcode=int(code) if code is not None else 0,
                subs=tuple(subs),
                bonuses=tuple(bonuses),
                bonus_pot=pot,
            )
        )

    # Questions of the bet that no root claimed score on their own
    for qid in sorted(by_id):
        q = by_id[qid]
        if qid in shapes or int(q.get("bet_id", bet_id)) != bet_id:
            continue
        shapes[qid] = _leaf_shape(q)

    return BetPlan(bet_id=bet_id, groups=tuple(groups), shapes=shapes, result_types=result_types)


__all__ = ["is_margin_question", "build_plan"]
