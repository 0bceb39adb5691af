from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.models import Teacher

from .schemas import TeacherResponse


async def list_teachers(db: AsyncSession, department_id: Optional[UUID] = None) -> List[TeacherResponse]:
    stmt = select(Teacher, User.full_name, User.email).join(User, User.id == Teacher.user_id)
    if department_id is not None:
        stmt = stmt.where(Teacher.department_id == department_id)
    stmt = stmt.order_by(User.full_name)
    result = await db.execute(stmt)
    return [
        TeacherResponse(
            id=t.id,
            user_id=t.user_id,
            full_name=full_name,
            email=email,
            employee_id=t.employee_id,
            department_id=t.department_id,
        )
        for t, full_name, email in result.all()
    ]
