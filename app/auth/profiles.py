"""Resolve an authenticated principal to its role-specific profile rows."""

from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.core.models import ClassAdvisor, Student, Teacher


async def find_teacher_for_user(db: AsyncSession, user_id: UUID) -> Optional[Teacher]:
    result = await db.execute(select(Teacher).where(Teacher.user_id == user_id))
    return result.scalar_one_or_none()


async def find_student_for_user(db: AsyncSession, user_id: UUID) -> Optional[Student]:
    result = await db.execute(select(Student).where(Student.user_id == user_id))
    return result.scalar_one_or_none()


async def find_advisor_for_user(db: AsyncSession, user_id: UUID) -> Optional[ClassAdvisor]:
    result = await db.execute(select(ClassAdvisor).where(ClassAdvisor.user_id == user_id))
    return result.scalar_one_or_none()


async def get_teacher_for_user(db: AsyncSession, user_id: UUID) -> Teacher:
    teacher = await find_teacher_for_user(db, user_id)
    if not teacher:
        raise ServiceError("Teacher profile not found", status.HTTP_403_FORBIDDEN)
    return teacher


async def get_student_for_user(db: AsyncSession, user_id: UUID) -> Student:
    student = await find_student_for_user(db, user_id)
    if not student:
        raise ServiceError("Student profile not found", status.HTTP_403_FORBIDDEN)
    return student


async def get_advisor_for_user(db: AsyncSession, user_id: UUID) -> ClassAdvisor:
    advisor = await find_advisor_for_user(db, user_id)
    if not advisor:
        raise ServiceError("Advisor assignment not found", status.HTTP_403_FORBIDDEN)
    return advisor
