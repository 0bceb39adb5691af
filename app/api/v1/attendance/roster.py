"""
Roster resolution: which students attend a session.

Tiers run in order and the first non-empty one wins:
  strict   department + semester + session section/batch
  relaxed  department + semester
  wide     department only (only when the subject has a department)
A tier that would filter on neither department nor semester is skipped, so the whole student
table is never returned.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.reports.service import CohortMember, fetch_cohort
from app.core.enums import RosterTier
from app.core.models import AttendanceSession, Subject

logger = logging.getLogger(__name__)

INSUFFICIENT_SCOPE = "insufficient_scope"
EMPTY_CLASS = "empty_class"

TierFilter = Callable[[], Optional[Dict[str, Any]]]


@dataclass
class RosterResult:
    students: List[CohortMember] = field(default_factory=list)
    tier: Optional[RosterTier] = None
    reason: Optional[str] = None


def _compact(**filters) -> Dict[str, Any]:
    return {k: v for k, v in filters.items() if v is not None and v != ""}


def roster_tiers(
    department_id: Optional[UUID],
    semester: Optional[int],
    section: Optional[str],
    batch: Optional[str],
) -> List[Tuple[RosterTier, TierFilter]]:
    """Ordered (tier, filter builder) pairs; a builder returns None when its tier does not apply."""

    def strict():
        return _compact(department_id=department_id, semester=semester, section=section, batch=batch)

    def relaxed():
        return _compact(department_id=department_id, semester=semester)

    def wide():
        if department_id is None:
            return None
        return {"department_id": department_id}

    return [(RosterTier.STRICT, strict), (RosterTier.RELAXED, relaxed), (RosterTier.WIDE, wide)]


def plan_roster_queries(
    department_id: Optional[UUID],
    semester: Optional[int],
    section: Optional[str],
    batch: Optional[str],
) -> List[Tuple[RosterTier, Dict[str, Any]]]:
    """Tiers that will actually be queried, in order, without scope-less or repeated filters."""
    plan: List[Tuple[RosterTier, Dict[str, Any]]] = []
    for tier, build in roster_tiers(department_id, semester, section, batch):
        filters = build()
        if filters is None:
            continue
        if "department_id" not in filters and "semester" not in filters:
            continue
        if plan and plan[-1][1] == filters:
            continue
        plan.append((tier, filters))
    return plan


async def resolve_roster(db: AsyncSession, session: AttendanceSession, subject: Subject) -> RosterResult:
    for tier, filters in plan_roster_queries(
        subject.department_id, subject.semester, session.section, session.batch
    ):
        students = await fetch_cohort(db, **filters)
        if students:
            if tier != RosterTier.STRICT:
                logger.info("Session %s roster resolved with %s tier", session.id, tier.value)
            return RosterResult(students=students, tier=tier)

    reason = INSUFFICIENT_SCOPE if subject.department_id is None else EMPTY_CLASS
    logger.warning("Session %s has an empty roster (%s)", session.id, reason)
    return RosterResult(reason=reason)
