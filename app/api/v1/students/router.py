from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ADMIN_ONLY, STAFF, require_roles
from app.core.exceptions import CsvFormatError, ServiceError
from app.db.session import get_db

from .schemas import (
    PromoteRequest,
    PromoteResponse,
    StudentAttendanceResponse,
    StudentCreate,
    StudentImportResponse,
    StudentResponse,
    SubjectHistoryResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get(
    "",
    response_model=List[StudentResponse],
    dependencies=[Depends(require_roles(STAFF))],
)
async def list_students(
    department_id: Optional[UUID] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=8),
    section: Optional[str] = Query(None),
    batch: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[StudentResponse]:
    return await service.list_students(
        db, department_id=department_id, semester=semester, section=section, batch=batch
    )


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        return await service.create_student(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/import",
    response_model=StudentImportResponse,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def import_students(
    file: UploadFile = File(
        ...,
        description="CSV with columns: email, full_name, roll_number[, password, semester, section, batch, department]",
    ),
    db: AsyncSession = Depends(get_db),
) -> StudentImportResponse:
    """Valid rows are created; failed rows are listed in errors with their line number."""
    content = await file.read()
    try:
        return await service.import_students_csv(db, content)
    except CsvFormatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.post(
    "/promote",
    response_model=PromoteResponse,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def promote_students(
    payload: PromoteRequest,
    db: AsyncSession = Depends(get_db),
) -> PromoteResponse:
    try:
        return await service.promote_students(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(require_roles(STAFF))],
)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    student = await service.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.get(
    "/{student_id}/attendance",
    response_model=StudentAttendanceResponse,
    dependencies=[Depends(require_roles(STAFF))],
)
async def student_attendance(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentAttendanceResponse:
    try:
        return await service.get_student_attendance(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{student_id}/subjects/{subject_id}/history",
    response_model=SubjectHistoryResponse,
    dependencies=[Depends(require_roles(STAFF))],
)
async def student_subject_history(
    student_id: UUID,
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> SubjectHistoryResponse:
    try:
        return await service.get_subject_history(db, student_id, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
