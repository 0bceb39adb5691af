from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.exceptions import ServiceError
from app.core.models import Subject, Teacher, TeacherSubjectAllocation

from .schemas import AllocationCreate, AllocationResponse


def _allocation_query():
    return (
        select(TeacherSubjectAllocation, Subject, Teacher.employee_id, User.full_name)
        .join(Subject, Subject.id == TeacherSubjectAllocation.subject_id)
        .join(Teacher, Teacher.id == TeacherSubjectAllocation.teacher_id)
        .join(User, User.id == Teacher.user_id)
    )


def _to_response(a: TeacherSubjectAllocation, subject: Subject, employee_id, teacher_name) -> AllocationResponse:
    return AllocationResponse(
        id=a.id,
        teacher_id=a.teacher_id,
        teacher_name=teacher_name,
        employee_id=employee_id,
        subject_id=a.subject_id,
        subject_code=subject.code,
        subject_name=subject.name,
        subject_semester=subject.semester,
        section=a.section,
        batch=a.batch,
        academic_year=a.academic_year,
        created_at=a.created_at,
    )


async def create_allocation(db: AsyncSession, payload: AllocationCreate) -> AllocationResponse:
    if not await db.get(Teacher, payload.teacher_id):
        raise ServiceError("Invalid teacher", status.HTTP_400_BAD_REQUEST)
    if not await db.get(Subject, payload.subject_id):
        raise ServiceError("Invalid subject", status.HTTP_400_BAD_REQUEST)

    section = payload.section.strip()
    batch = payload.batch.strip() if payload.batch and payload.batch.strip() else None
    academic_year = payload.academic_year.strip()

    # The unique constraint does not see NULL batches as equal
    existing = await db.execute(
        select(TeacherSubjectAllocation.id).where(
            TeacherSubjectAllocation.teacher_id == payload.teacher_id,
            TeacherSubjectAllocation.subject_id == payload.subject_id,
            TeacherSubjectAllocation.academic_year == academic_year,
            TeacherSubjectAllocation.section == section,
            TeacherSubjectAllocation.batch.is_not_distinct_from(batch),
        )
    )
    if existing.first() is not None:
        raise ServiceError("This allocation already exists", status.HTTP_409_CONFLICT)

    try:
        obj = TeacherSubjectAllocation(
            teacher_id=payload.teacher_id,
            subject_id=payload.subject_id,
            section=section,
            batch=batch,
            academic_year=academic_year,
        )
        db.add(obj)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("This allocation already exists", status.HTTP_409_CONFLICT)

    result = await db.execute(_allocation_query().where(TeacherSubjectAllocation.id == obj.id))
    return _to_response(*result.one())


async def list_allocations(
    db: AsyncSession,
    academic_year: Optional[str] = None,
    teacher_id: Optional[UUID] = None,
) -> List[AllocationResponse]:
    stmt = _allocation_query()
    if academic_year:
        stmt = stmt.where(TeacherSubjectAllocation.academic_year == academic_year)
    if teacher_id is not None:
        stmt = stmt.where(TeacherSubjectAllocation.teacher_id == teacher_id)
    stmt = stmt.order_by(TeacherSubjectAllocation.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(*row) for row in result.all()]


async def delete_allocation(db: AsyncSession, allocation_id: UUID) -> bool:
    obj = await db.get(TeacherSubjectAllocation, allocation_id)
    if not obj:
        return False
    await db.delete(obj)
    await db.commit()
    return True


async def teacher_has_allocation(db: AsyncSession, teacher_id: UUID, subject_id: UUID) -> bool:
    result = await db.execute(
        select(TeacherSubjectAllocation.id)
        .where(
            TeacherSubjectAllocation.teacher_id == teacher_id,
            TeacherSubjectAllocation.subject_id == subject_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None
