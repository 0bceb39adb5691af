from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ADMIN_ONLY, require_roles
from app.auth.dependencies import get_current_user
from app.core.exceptions import CsvFormatError, ServiceError
from app.db.session import get_db

from .schemas import SubjectCreate, SubjectImportResponse, SubjectResponse, SubjectUpdate
from . import service

router = APIRouter(prefix="/api/v1/subjects", tags=["subjects"])


@router.post(
    "",
    response_model=SubjectResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def create_subject(
    payload: SubjectCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await service.create_subject(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[SubjectResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_subjects(
    department_id: Optional[UUID] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=8),
    db: AsyncSession = Depends(get_db),
):
    return await service.list_subjects(db, department_id=department_id, semester=semester)


@router.post(
    "/import",
    response_model=SubjectImportResponse,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def import_subjects(
    file: UploadFile = File(..., description="CSV with columns: code, name[, semester, credits, department]"),
    db: AsyncSession = Depends(get_db),
):
    """Bulk upsert subjects by code. Per-row problems are returned in errors."""
    content = await file.read()
    try:
        return await service.import_subjects_csv(db, content)
    except CsvFormatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{subject_id}",
    response_model=SubjectResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    subject = await service.get_subject(db, subject_id)
    if not subject:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    return subject


@router.put(
    "/{subject_id}",
    response_model=SubjectResponse,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def update_subject(
    subject_id: UUID,
    payload: SubjectUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        subject = await service.update_subject(db, subject_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not subject:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    return subject


@router.delete(
    "/{subject_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def delete_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_subject(db, subject_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
