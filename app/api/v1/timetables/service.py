import logging
from datetime import date, time
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.exceptions import SchedulingConflictError, ServiceError
from app.core.models import Subject, Teacher, TimetableSlot

from .conflicts import SlotView, find_conflicts
from .schemas import TimetableSlotCreate, TimetableSlotResponse, TimetableSlotUpdate

logger = logging.getLogger(__name__)

SLOT_FIELDS = (
    "subject_id", "teacher_id", "day_of_week", "start_time", "end_time",
    "room", "section", "semester", "batch",
)


def _slot_query():
    return (
        select(TimetableSlot, Subject.code, Subject.name, User.full_name)
        .join(Subject, Subject.id == TimetableSlot.subject_id)
        .outerjoin(Teacher, Teacher.id == TimetableSlot.teacher_id)
        .outerjoin(User, User.id == Teacher.user_id)
    )


def _to_response(t: TimetableSlot, subject_code, subject_name, teacher_name) -> TimetableSlotResponse:
    return TimetableSlotResponse(
        id=t.id,
        subject_id=t.subject_id,
        subject_code=subject_code,
        subject_name=subject_name,
        teacher_id=t.teacher_id,
        teacher_name=teacher_name,
        day_of_week=t.day_of_week,
        start_time=t.start_time,
        end_time=t.end_time,
        room=t.room,
        section=t.section,
        semester=t.semester,
        batch=t.batch,
        created_at=t.created_at,
    )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _slot_view(values: dict, slot_id: Optional[UUID] = None) -> SlotView:
    return SlotView(
        id=slot_id,
        day_of_week=values["day_of_week"],
        start_time=values["start_time"],
        end_time=values["end_time"],
        teacher_id=values["teacher_id"],
        room=values["room"],
        section=values["section"],
        semester=values["semester"],
    )


async def _check_conflicts(db: AsyncSession, candidate: SlotView) -> None:
    result = await db.execute(_slot_query().where(TimetableSlot.day_of_week == candidate.day_of_week))
    existing = [
        SlotView(
            id=t.id,
            day_of_week=t.day_of_week,
            start_time=t.start_time,
            end_time=t.end_time,
            teacher_id=t.teacher_id,
            teacher_name=teacher_name,
            room=t.room,
            section=t.section,
            semester=t.semester,
            subject_code=code,
        )
        for t, code, _, teacher_name in result.all()
    ]
    conflicts = find_conflicts(candidate, existing)
    if conflicts:
        logger.warning("Rejected timetable slot on day %d: %s", candidate.day_of_week, "; ".join(conflicts))
        raise SchedulingConflictError(conflicts)


async def _validate_refs(db: AsyncSession, subject_id: UUID, teacher_id: Optional[UUID]) -> None:
    if not await db.get(Subject, subject_id):
        raise ServiceError("Invalid subject", status.HTTP_400_BAD_REQUEST)
    if teacher_id is not None and not await db.get(Teacher, teacher_id):
        raise ServiceError("Invalid teacher", status.HTTP_400_BAD_REQUEST)


async def get_timetable_slot(db: AsyncSession, slot_id: UUID) -> Optional[TimetableSlotResponse]:
    result = await db.execute(_slot_query().where(TimetableSlot.id == slot_id))
    row = result.first()
    return _to_response(*row) if row else None


async def create_timetable_slot(db: AsyncSession, payload: TimetableSlotCreate) -> TimetableSlotResponse:
    if payload.end_time <= payload.start_time:
        raise ServiceError("end_time must be after start_time", status.HTTP_400_BAD_REQUEST)
    await _validate_refs(db, payload.subject_id, payload.teacher_id)

    values = {f: getattr(payload, f) for f in SLOT_FIELDS}
    for f in ("room", "section", "batch"):
        values[f] = _clean(values[f])
    await _check_conflicts(db, _slot_view(values))

    try:
        obj = TimetableSlot(**values)
        db.add(obj)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Timetable slot creation failed", status.HTTP_409_CONFLICT)
    return await get_timetable_slot(db, obj.id)


async def list_timetable_slots(
    db: AsyncSession,
    day_of_week: Optional[int] = None,
    section: Optional[str] = None,
    semester: Optional[int] = None,
    teacher_id: Optional[UUID] = None,
    department_id: Optional[UUID] = None,
) -> List[TimetableSlotResponse]:
    stmt = _slot_query()
    if day_of_week is not None:
        stmt = stmt.where(TimetableSlot.day_of_week == day_of_week)
    if section:
        stmt = stmt.where(TimetableSlot.section == section)
    if semester is not None:
        stmt = stmt.where(TimetableSlot.semester == semester)
    if teacher_id is not None:
        stmt = stmt.where(TimetableSlot.teacher_id == teacher_id)
    if department_id is not None:
        stmt = stmt.where(Subject.department_id == department_id)
    stmt = stmt.order_by(TimetableSlot.day_of_week, TimetableSlot.start_time)
    result = await db.execute(stmt)
    return [_to_response(*row) for row in result.all()]


async def update_timetable_slot(
    db: AsyncSession,
    slot_id: UUID,
    payload: TimetableSlotUpdate,
) -> Optional[TimetableSlotResponse]:
    obj = await db.get(TimetableSlot, slot_id)
    if not obj:
        return None
    changes = payload.model_dump(exclude_unset=True)
    merged = {f: changes.get(f, getattr(obj, f)) for f in SLOT_FIELDS}
    for f in ("room", "section", "batch"):
        merged[f] = _clean(merged[f])
    if merged["subject_id"] is None or merged["day_of_week"] is None:
        raise ServiceError("subject_id and day_of_week cannot be cleared", status.HTTP_400_BAD_REQUEST)
    if merged["start_time"] is None or merged["end_time"] is None:
        raise ServiceError("start_time and end_time cannot be cleared", status.HTTP_400_BAD_REQUEST)
    if merged["end_time"] <= merged["start_time"]:
        raise ServiceError("end_time must be after start_time", status.HTTP_400_BAD_REQUEST)
    await _validate_refs(db, merged["subject_id"], merged["teacher_id"])
    await _check_conflicts(db, _slot_view(merged, slot_id=obj.id))

    for key, value in merged.items():
        setattr(obj, key, value)
    await db.commit()
    return await get_timetable_slot(db, slot_id)


async def delete_timetable_slot(db: AsyncSession, slot_id: UUID) -> bool:
    obj = await db.get(TimetableSlot, slot_id)
    if not obj:
        return False
    await db.delete(obj)
    await db.commit()
    return True


SlotIndex = Dict[Tuple[UUID, time], TimetableSlotResponse]


async def index_slots_for_day(
    db: AsyncSession, day_of_week: int, subject_ids: Optional[Sequence[UUID]] = None
) -> SlotIndex:
    """
    Slots of one weekday keyed by (subject_id, start_time), the soft link between a session and
    the template it was started from. Built once and reused for every session of that day.
    """
    stmt = _slot_query().where(TimetableSlot.day_of_week == day_of_week)
    if subject_ids is not None:
        if not subject_ids:
            return {}
        stmt = stmt.where(TimetableSlot.subject_id.in_(list(subject_ids)))
    result = await db.execute(stmt.order_by(TimetableSlot.start_time))
    index: SlotIndex = {}
    for row in result.all():
        slot = _to_response(*row)
        index.setdefault((slot.subject_id, slot.start_time), slot)
    return index


async def match_timetable_slot(
    db: AsyncSession, subject_id: UUID, session_date: date, start_time: Optional[time]
) -> Optional[TimetableSlotResponse]:
    if start_time is None:
        return None
    index = await index_slots_for_day(db, session_date.weekday(), [subject_id])
    return index.get((subject_id, start_time))
