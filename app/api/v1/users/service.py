import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.services import create_user
from app.core.enums import UserRole
from app.core.exceptions import ServiceError
from app.core.models import Department, Student, Teacher

from .schemas import UserCreate, UserResponse

logger = logging.getLogger(__name__)


async def provision_user(db: AsyncSession, payload: UserCreate) -> User:
    """Create the user and its role profile in one transaction."""
    if payload.department_id is not None and not await db.get(Department, payload.department_id):
        raise ServiceError("Invalid department", status.HTTP_400_BAD_REQUEST)

    roll_number = payload.roll_number.strip() if payload.roll_number else None
    if payload.role == UserRole.STUDENT:
        if not roll_number:
            raise ServiceError("roll_number is required for students", status.HTTP_400_BAD_REQUEST)
        taken = await db.execute(select(Student.id).where(Student.roll_number == roll_number))
        if taken.first() is not None:
            raise ServiceError(f"Roll number {roll_number} already exists", status.HTTP_409_CONFLICT)

    user = await create_user(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role.value,
        commit=False,
    )
    if payload.role == UserRole.TEACHER:
        db.add(Teacher(user_id=user.id, employee_id=payload.employee_id, department_id=payload.department_id))
    elif payload.role == UserRole.STUDENT:
        db.add(
            Student(
                user_id=user.id,
                roll_number=roll_number,
                semester=payload.semester,
                section=payload.section or None,
                batch=payload.batch or None,
                department_id=payload.department_id,
            )
        )
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("User or profile already exists", status.HTTP_409_CONFLICT) from e
    await db.refresh(user)
    logger.info("Provisioned %s user %s", user.role, user.id)
    return user


async def list_users(db: AsyncSession, role: Optional[UserRole] = None) -> List[UserResponse]:
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    stmt = stmt.order_by(User.created_at.desc())
    result = await db.execute(stmt)
    return [UserResponse.model_validate(u) for u in result.scalars().all()]


async def update_user_role(db: AsyncSession, user_id: UUID, role: UserRole) -> Optional[UserResponse]:
    user = await db.get(User, user_id)
    if not user:
        return None
    if user.role != role.value:
        logger.info("User %s role %s -> %s", user.id, user.role, role.value)
        user.role = role.value
        await db.commit()
        await db.refresh(user)
    return UserResponse.model_validate(user)
