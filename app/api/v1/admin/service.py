import logging
from typing import List
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import UserRole
from app.core.exceptions import ServiceError
from app.core.models import (
    AttendanceSession,
    ClassAdvisor,
    Department,
    Student,
    Subject,
    Teacher,
    TeacherSubjectAllocation,
)

from .schemas import AdvisorAssign, AdvisorResponse, StatsResponse

logger = logging.getLogger(__name__)


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def get_stats(db: AsyncSession) -> StatsResponse:
    return StatsResponse(
        users=await _count(db, User),
        students=await _count(db, Student),
        teachers=await _count(db, Teacher),
        departments=await _count(db, Department),
        subjects=await _count(db, Subject),
        allocations=await _count(db, TeacherSubjectAllocation),
        sessions=await _count(db, AttendanceSession),
    )


def _to_response(a: ClassAdvisor, full_name, email) -> AdvisorResponse:
    return AdvisorResponse(
        id=a.id,
        user_id=a.user_id,
        full_name=full_name,
        email=email,
        department_id=a.department_id,
        section=a.section,
        semester=a.semester,
        academic_year=a.academic_year,
        created_at=a.created_at,
    )


async def list_advisors(db: AsyncSession) -> List[AdvisorResponse]:
    result = await db.execute(
        select(ClassAdvisor, User.full_name, User.email)
        .join(User, User.id == ClassAdvisor.user_id)
        .order_by(ClassAdvisor.created_at.desc())
    )
    return [_to_response(*row) for row in result.all()]


async def assign_advisor(db: AsyncSession, payload: AdvisorAssign) -> AdvisorResponse:
    """Create or replace the user's advisor assignment and switch their role to advisor."""
    user = await db.get(User, payload.user_id)
    if not user:
        raise ServiceError("User not found", status.HTTP_404_NOT_FOUND)
    if user.role == UserRole.STUDENT.value:
        raise ServiceError("Students cannot be class advisors", status.HTTP_400_BAD_REQUEST)
    if payload.department_id is not None and not await db.get(Department, payload.department_id):
        raise ServiceError("Department not found", status.HTTP_400_BAD_REQUEST)

    result = await db.execute(select(ClassAdvisor).where(ClassAdvisor.user_id == payload.user_id))
    advisor = result.scalar_one_or_none()
    if advisor is None:
        advisor = ClassAdvisor(user_id=payload.user_id)
        db.add(advisor)
    for key, value in payload.model_dump(exclude={"user_id"}).items():
        setattr(advisor, key, value)
    if user.role != UserRole.ADVISOR.value:
        logger.info("User %s role %s -> advisor", user.id, user.role)
        user.role = UserRole.ADVISOR.value
    await db.commit()
    await db.refresh(advisor)
    return _to_response(advisor, user.full_name, user.email)


async def remove_advisor(db: AsyncSession, advisor_id: UUID) -> bool:
    obj = await db.get(ClassAdvisor, advisor_id)
    if not obj:
        return False
    await db.delete(obj)
    await db.commit()
    return True
