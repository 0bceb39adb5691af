from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import STAFF, require_roles
from app.auth.schemas import CurrentUser
from app.core.csv_io import attachment
from app.core.enums import SessionStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AttendanceRecordResponse,
    BulkMarkRequest,
    BulkMarkResponse,
    RosterResponse,
    SessionCreate,
    SessionResponse,
    SessionUpdate,
    SingleMarkRequest,
)
from . import service

router = APIRouter(
    prefix="/api/v1/attendance/sessions",
    tags=["attendance"],
    dependencies=[Depends(require_roles(STAFF))],
)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> SessionResponse:
    try:
        return await service.create_session(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    teacher_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
    session_date: Optional[date] = Query(None, alias="date"),
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> List[SessionResponse]:
    return await service.list_sessions(
        db,
        teacher_id=teacher_id,
        subject_id=subject_id,
        session_date=session_date,
        status_filter=status_filter,
        limit=limit,
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    try:
        return await service.get_session(db, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: UUID,
    payload: SessionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> SessionResponse:
    """Edit details and/or move the status along scheduled -> active -> completed."""
    try:
        return await service.update_session(db, current_user, session_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{session_id}/roster", response_model=RosterResponse)
async def get_roster(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RosterResponse:
    """Resolved students with their current mark. Opening the roster does not change the status."""
    try:
        return await service.get_roster(db, current_user, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{session_id}/mark", response_model=BulkMarkResponse)
async def mark_attendance(
    session_id: UUID,
    payload: BulkMarkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkMarkResponse:
    try:
        return await service.mark_attendance(db, current_user, session_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{session_id}/records/{student_id}", response_model=AttendanceRecordResponse)
async def mark_single(
    session_id: UUID,
    student_id: UUID,
    payload: SingleMarkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceRecordResponse:
    try:
        return await service.mark_single(db, current_user, session_id, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> SessionResponse:
    """Records are kept but no longer count towards any percentage."""
    try:
        return await service.cancel_session(db, current_user, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{session_id}/export")
async def export_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        content, filename = await service.export_session_csv(db, current_user, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return attachment(content, filename)
