from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.core.models import ClassAdvisor, Department, Student, Subject, Teacher

from .schemas import DepartmentCreate, DepartmentResponse, DepartmentUpdate


async def create_department(db: AsyncSession, payload: DepartmentCreate) -> DepartmentResponse:
    code = payload.code.strip().upper()[:20]
    name = payload.name.strip()
    description = payload.description.strip() if payload.description else None
    try:
        dept = Department(code=code, name=name, description=description)
        db.add(dept)
        await db.commit()
        await db.refresh(dept)
        return DepartmentResponse.model_validate(dept)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Department code already exists", status.HTTP_409_CONFLICT)


async def list_departments(db: AsyncSession) -> List[DepartmentResponse]:
    result = await db.execute(select(Department).order_by(Department.name))
    return [DepartmentResponse.model_validate(d) for d in result.scalars().all()]


async def get_department(db: AsyncSession, department_id: UUID) -> Optional[DepartmentResponse]:
    dept = await db.get(Department, department_id)
    if not dept:
        return None
    return DepartmentResponse.model_validate(dept)


async def get_department_by_code(db: AsyncSession, code: str) -> Optional[Department]:
    """Case-insensitive lookup used by CSV imports."""
    result = await db.execute(
        select(Department).where(func.upper(Department.code) == code.strip().upper())
    )
    return result.scalar_one_or_none()


async def update_department(
    db: AsyncSession,
    department_id: UUID,
    payload: DepartmentUpdate,
) -> Optional[DepartmentResponse]:
    dept = await db.get(Department, department_id)
    if not dept:
        return None
    if payload.name is not None:
        dept.name = payload.name.strip()
    if payload.description is not None:
        dept.description = payload.description.strip() or None
    await db.commit()
    await db.refresh(dept)
    return DepartmentResponse.model_validate(dept)


async def delete_department(db: AsyncSession, department_id: UUID) -> bool:
    dept = await db.get(Department, department_id)
    if not dept:
        return False
    # Referencing rows keep existing without a department
    for model in (Subject, Student, Teacher, ClassAdvisor):
        await db.execute(
            update(model).where(model.department_id == department_id).values(department_id=None)
        )
    await db.delete(dept)
    await db.commit()
    return True
