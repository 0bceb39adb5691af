from uuid import uuid4

from app.api.v1.attendance.roster import plan_roster_queries
from app.core.enums import RosterTier


def test_full_scope_plans_three_tiers_in_order() -> None:
    dept = uuid4()
    plan = plan_roster_queries(dept, 3, "A", "B1")
    assert plan == [
        (RosterTier.STRICT, {"department_id": dept, "semester": 3, "section": "A", "batch": "B1"}),
        (RosterTier.RELAXED, {"department_id": dept, "semester": 3}),
        (RosterTier.WIDE, {"department_id": dept}),
    ]


def test_session_without_section_skips_repeated_relaxed_tier() -> None:
    dept = uuid4()
    plan = plan_roster_queries(dept, 3, None, None)
    assert [tier for tier, _ in plan] == [RosterTier.STRICT, RosterTier.WIDE]


def test_subject_without_department_never_goes_wide() -> None:
    plan = plan_roster_queries(None, 3, "A", None)
    assert [tier for tier, _ in plan] == [RosterTier.STRICT, RosterTier.RELAXED]
    assert plan[1][1] == {"semester": 3}


def test_no_department_and_no_semester_queries_nothing() -> None:
    assert plan_roster_queries(None, None, "A", "B1") == []
