from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import SCHEDULERS, require_roles
from app.db.session import get_db

from .schemas import TeacherResponse
from . import service

router = APIRouter(prefix="/api/v1/teachers", tags=["teachers"])


@router.get(
    "",
    response_model=List[TeacherResponse],
    dependencies=[Depends(require_roles(SCHEDULERS))],
)
async def list_teachers(
    department_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[TeacherResponse]:
    return await service.list_teachers(db, department_id=department_id)
