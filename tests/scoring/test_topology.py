"""Tests for topology classification."""

from decimal import Decimal

from poolscore.scoring.topology import build_plan, is_margin_question
from poolscore.scoring.types import Bonus, BundleRoot, Margin, Single, Sub
from poolscore.shared.enums import ResultType


def q(qid, *, bet_id=1, parent_id=None, groupcode=None, points=10, lineup=0, rt="open", margin=None, step=None):
    return {
        "id": qid,
        "bet_id": bet_id,
        "parent_id": parent_id,
        "groupcode": groupcode if groupcode is not None else qid,
        "points": points,
        "lineup": lineup,
        "result_type": rt,
        "margin": margin,
        "step": step,
    }


def test_root_without_members_is_single():
    plan = build_plan(1, [q(1)])
    assert plan.shapes[1] == Single(question_id=1, points=Decimal("10"))
    assert len(plan.groups) == 1


def test_bundle_and_bonus_classification():
    plan = build_plan(
        1,
        [
            q(1, groupcode=100, points=20),
            q(2, groupcode=100, parent_id=1, points=0, lineup=2),
            q(3, groupcode=100, parent_id=1, points=0, lineup=1),
            q(4, groupcode=100, parent_id=1, points=5, lineup=4),
            q(5, groupcode=100, parent_id=1, points=7, lineup=3),
        ],
    )
    assert plan.shapes[1] == BundleRoot(question_id=1, points=Decimal("20"), subs=(3, 2))
    assert plan.shapes[2] == Sub(question_id=2, root_id=1)
    assert isinstance(plan.shapes[4], Bonus)

    group = plan.groups[0]
    assert group.bonuses == (5, 4)
    assert group.bonus_pot == Decimal("12")


def test_margin_root():
    plan = build_plan(1, [q(1, rt="decimal", margin=3, step=0.5)])
    assert isinstance(plan.shapes[1], Margin)
    assert plan.margin_question_ids == (1,)


def test_margin_requires_supported_type_and_both_settings():
    assert is_margin_question(q(1, rt="time", margin=2, step=60))
    assert not is_margin_question(q(1, rt="open", margin=2, step=1))
    assert not is_margin_question(q(1, rt="decimal", margin=2, step=None))
    assert not is_margin_question(q(1, rt="decimal", margin=0, step=1))


def test_result_types_use_labels():
    plan = build_plan(1, [q(1, rt="number"), q(2, rt="list")])
    assert plan.result_type(1) is ResultType.DECIMAL
    assert plan.result_type(2) is ResultType.LIST
    assert plan.result_type(999) is ResultType.OPEN


def test_no_roots_means_no_groups():
    plan = build_plan(1, [q(2, parent_id=1, groupcode=9)])
    assert plan.groups == ()


def test_members_from_other_bets_join_the_group():
    plan = build_plan(
        1,
        [q(1, groupcode=50), q(9, bet_id=2, groupcode=50, parent_id=1, points=0)],
    )
    assert plan.shapes[1] == BundleRoot(question_id=1, points=Decimal("10"), subs=(9,))
