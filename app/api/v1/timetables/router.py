from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import SCHEDULERS, require_roles
from app.core.exceptions import SchedulingConflictError, ServiceError
from app.db.session import get_db

from .schemas import TimetableSlotCreate, TimetableSlotResponse, TimetableSlotUpdate
from . import service

router = APIRouter(prefix="/api/v1/timetables", tags=["timetables"])


@router.post(
    "",
    response_model=TimetableSlotResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(SCHEDULERS))],
)
async def create_timetable_slot(
    payload: TimetableSlotCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a weekly slot. Teacher, room and section collisions on the same day are rejected with 409."""
    try:
        return await service.create_timetable_slot(db, payload)
    except SchedulingConflictError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[TimetableSlotResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_timetable_slots(
    day_of_week: Optional[int] = Query(None, ge=0, le=6),
    section: Optional[str] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=8),
    teacher_id: Optional[UUID] = Query(None),
    department_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await service.list_timetable_slots(
        db,
        day_of_week=day_of_week,
        section=section,
        semester=semester,
        teacher_id=teacher_id,
        department_id=department_id,
    )


@router.get(
    "/{slot_id}",
    response_model=TimetableSlotResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_timetable_slot(
    slot_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    obj = await service.get_timetable_slot(db, slot_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timetable slot not found")
    return obj


@router.patch(
    "/{slot_id}",
    response_model=TimetableSlotResponse,
    dependencies=[Depends(require_roles(SCHEDULERS))],
)
async def update_timetable_slot(
    slot_id: UUID,
    payload: TimetableSlotUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        obj = await service.update_timetable_slot(db, slot_id, payload)
    except SchedulingConflictError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timetable slot not found")
    return obj


@router.delete(
    "/{slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(SCHEDULERS))],
)
async def delete_timetable_slot(
    slot_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_timetable_slot(db, slot_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timetable slot not found")
