from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.allocations.service import teacher_has_allocation
from app.auth.dependencies import get_current_user
from app.auth.profiles import get_teacher_for_user
from app.auth.rbac import STAFF, require_roles
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.csv_io import XLSX_MEDIA_TYPE, attachment
from app.core.enums import ExportFormat, UserRole
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import CompiledReport, DefaulterReport
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get(
    "/defaulters",
    response_model=DefaulterReport,
    dependencies=[Depends(require_roles(STAFF))],
)
async def defaulters(
    threshold: Optional[int] = Query(None, ge=0, le=100),
    semester: Optional[int] = Query(None, ge=1, le=8),
    department_id: Optional[UUID] = Query(None),
    section: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> DefaulterReport:
    """Students whose overall attendance is strictly below the threshold, worst first."""
    return await service.get_defaulters(
        db, threshold=threshold, semester=semester, department_id=department_id, section=section
    )


@router.get(
    "/defaulters/export",
    dependencies=[Depends(require_roles(STAFF))],
)
async def export_defaulters(
    threshold: Optional[int] = Query(None, ge=0, le=100),
    semester: Optional[int] = Query(None, ge=1, le=8),
    department_id: Optional[UUID] = Query(None),
    section: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    report = await service.get_defaulters(
        db, threshold=threshold, semester=semester, department_id=department_id, section=section
    )
    return attachment(service.defaulters_csv(report), f"defaulters_below_{report.threshold}.csv")


@router.get(
    "/compiled",
    response_model=CompiledReport,
    dependencies=[Depends(require_roles(STAFF))],
)
async def compiled(
    semester: int = Query(..., ge=1, le=8),
    department_id: Optional[UUID] = Query(None),
    section: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> CompiledReport:
    return await service.get_compiled(db, semester=semester, department_id=department_id, section=section)


@router.get(
    "/compiled/export",
    dependencies=[Depends(require_roles(STAFF))],
)
async def export_compiled(
    semester: int = Query(..., ge=1, le=8),
    department_id: Optional[UUID] = Query(None),
    section: Optional[str] = Query(None),
    format: ExportFormat = Query(ExportFormat.CSV),
    db: AsyncSession = Depends(get_db),
):
    try:
        content, filename = await service.export_compiled(
            db, semester=semester, department_id=department_id, section=section, fmt=format
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if format == ExportFormat.XLSX:
        return attachment(content, filename, XLSX_MEDIA_TYPE)
    return attachment(content, filename)


@router.get(
    "/subjects/{subject_id}/export",
    dependencies=[Depends(require_roles(STAFF))],
)
async def export_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Per-subject CSV. Teachers may only export subjects they are allocated to."""
    try:
        if current_user.role == UserRole.TEACHER.value and settings.enforce_session_ownership:
            teacher = await get_teacher_for_user(db, current_user.id)
            if not await teacher_has_allocation(db, teacher.id, subject_id):
                raise HTTPException(status_code=403, detail="You are not assigned to this subject")
        content, filename = await service.export_subject_report(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return attachment(content, filename)
