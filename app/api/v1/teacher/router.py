from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.attendance import service as attendance_service
from app.api.v1.attendance.schemas import SessionResponse
from app.auth.profiles import get_teacher_for_user
from app.auth.rbac import TEACHING, require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import SessionStatus
from app.core.exceptions import ServiceError
from app.core.models import Teacher
from app.db.session import get_db

from .schemas import SubjectReport, TeacherClassesResponse, TimetableEntry
from . import service

router = APIRouter(prefix="/api/v1/teacher", tags=["teacher"])


async def current_teacher(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(TEACHING)),
) -> Teacher:
    try:
        return await get_teacher_for_user(db, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/classes", response_model=TeacherClassesResponse)
async def my_classes(
    db: AsyncSession = Depends(get_db),
    teacher: Teacher = Depends(current_teacher),
) -> TeacherClassesResponse:
    """Allocated subjects plus today's sessions."""
    return await service.get_classes(db, teacher)


@router.get("/sessions", response_model=List[SessionResponse])
async def my_sessions(
    session_date: Optional[date] = Query(None, alias="date"),
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    teacher: Teacher = Depends(current_teacher),
) -> List[SessionResponse]:
    return await attendance_service.list_sessions(
        db, teacher_id=teacher.id, session_date=session_date, status_filter=status_filter, limit=limit
    )


@router.get("/timetable", response_model=List[TimetableEntry])
async def my_timetable(
    on_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    teacher: Teacher = Depends(current_teacher),
) -> List[TimetableEntry]:
    return await service.get_timetable(db, teacher, on_date or date.today())


@router.get("/reports", response_model=List[SubjectReport])
async def my_reports(
    db: AsyncSession = Depends(get_db),
    teacher: Teacher = Depends(current_teacher),
) -> List[SubjectReport]:
    return await service.get_reports(db, teacher)
