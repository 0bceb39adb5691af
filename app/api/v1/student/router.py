from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.students.schemas import StudentAttendanceResponse, SubjectHistoryResponse
from app.api.v1.students.service import get_student_attendance, get_subject_history
from app.auth.profiles import get_student_for_user
from app.auth.rbac import STUDENT_ONLY, require_roles
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.models import Student
from app.db.session import get_db

from .schemas import StudentTimetableEntry
from . import service

router = APIRouter(prefix="/api/v1/student", tags=["student"])


async def current_student(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(STUDENT_ONLY)),
) -> Student:
    try:
        return await get_student_for_user(db, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/attendance", response_model=StudentAttendanceResponse)
async def my_attendance(
    db: AsyncSession = Depends(get_db),
    student: Student = Depends(current_student),
) -> StudentAttendanceResponse:
    """Overall and per-subject attendance of the logged-in student."""
    try:
        return await get_student_attendance(db, student.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/attendance/subjects/{subject_id}/history", response_model=SubjectHistoryResponse)
async def my_subject_history(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    student: Student = Depends(current_student),
) -> SubjectHistoryResponse:
    """Session-by-session history of one subject for the logged-in student, newest first."""
    try:
        return await get_subject_history(db, student.id, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/timetable", response_model=List[StudentTimetableEntry])
async def my_timetable(
    on_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    student: Student = Depends(current_student),
) -> List[StudentTimetableEntry]:
    return await service.get_timetable(db, student, on_date or date.today())
