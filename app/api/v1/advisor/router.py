from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.reports.schemas import DefaulterReport
from app.auth.profiles import get_advisor_for_user
from app.auth.rbac import ADVISOR_ONLY, require_roles
from app.auth.schemas import CurrentUser
from app.core.csv_io import attachment
from app.core.enums import AdvisorReportType
from app.core.exceptions import ServiceError
from app.core.models import ClassAdvisor
from app.db.session import get_db

from .schemas import (
    ClassHealthResponse,
    CohortStudentsResponse,
    NoteCreate,
    NoteResponse,
    StudentDetailResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/advisor", tags=["advisor"])


async def current_advisor(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(ADVISOR_ONLY)),
) -> ClassAdvisor:
    try:
        return await get_advisor_for_user(db, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students", response_model=CohortStudentsResponse)
async def cohort_students(
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
) -> CohortStudentsResponse:
    try:
        return await service.list_cohort_students(db, advisor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/health", response_model=ClassHealthResponse)
async def health(
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
) -> ClassHealthResponse:
    """Average attendance of the class and how many students are below the threshold."""
    try:
        return await service.class_health(db, advisor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/risks", response_model=DefaulterReport)
async def risks(
    threshold: Optional[int] = Query(None, ge=0, le=100),
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
) -> DefaulterReport:
    try:
        return await service.at_risk(db, advisor, threshold=threshold)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}", response_model=StudentDetailResponse)
async def student_detail(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
) -> StudentDetailResponse:
    try:
        return await service.student_detail(db, advisor, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/notes", response_model=List[NoteResponse])
async def list_notes(
    student_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
) -> List[NoteResponse]:
    return await service.list_notes(db, advisor, student_id=student_id)


@router.post("/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def add_note(
    payload: NoteCreate,
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
) -> NoteResponse:
    try:
        return await service.add_note(db, advisor, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/reports")
async def download_report(
    report_type: AdvisorReportType = Query(AdvisorReportType.FULL, alias="type"),
    batch: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    advisor: ClassAdvisor = Depends(current_advisor),
):
    try:
        content, filename = await service.build_report(db, advisor, report_type, batch)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return attachment(content, filename)
