"""Attendance sessions: lifecycle, roster view and record upserts."""

import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.allocations.service import teacher_has_allocation
from app.api.v1.timetables import service as timetable_service
from app.auth.models import User
from app.auth.profiles import find_teacher_for_user, get_teacher_for_user
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.csv_io import build_csv
from app.core.enums import SessionStatus, UserRole
from app.core.exceptions import ServiceError
from app.core.models import AttendanceRecord, AttendanceSession, Student, Subject, Teacher, TimetableSlot

from .lifecycle import ensure_markable, ensure_transition
from .roster import resolve_roster
from .schemas import (
    AttendanceRecordResponse,
    BulkMarkRequest,
    BulkMarkResponse,
    RosterEntry,
    RosterResponse,
    SessionCreate,
    SessionResponse,
    SessionUpdate,
    SingleMarkRequest,
)

logger = logging.getLogger(__name__)


def _session_query():
    return (
        select(AttendanceSession, Subject.code, Subject.name, User.full_name)
        .join(Subject, Subject.id == AttendanceSession.subject_id)
        .outerjoin(Teacher, Teacher.id == AttendanceSession.teacher_id)
        .outerjoin(User, User.id == Teacher.user_id)
    )


def _to_response(
    s: AttendanceSession,
    subject_code: Optional[str],
    subject_name: Optional[str],
    teacher_name: Optional[str],
    timetable_slot_id: Optional[UUID] = None,
) -> SessionResponse:
    return SessionResponse(
        id=s.id,
        subject_id=s.subject_id,
        subject_code=subject_code,
        subject_name=subject_name,
        teacher_id=s.teacher_id,
        teacher_name=teacher_name,
        session_date=s.session_date,
        start_time=s.start_time,
        end_time=s.end_time,
        room=s.room,
        section=s.section,
        batch=s.batch,
        status=s.status,
        timetable_slot_id=timetable_slot_id,
        created_at=s.created_at,
    )


async def _responses_with_slots(db: AsyncSession, rows: Sequence[tuple]) -> List[SessionResponse]:
    """Attach the correlated timetable slot, indexing each weekday's slots once."""
    indexes: Dict[int, timetable_service.SlotIndex] = {}
    out = []
    for row in rows:
        s = row[0]
        slot_id = None
        if s.start_time is not None:
            day = s.session_date.weekday()
            if day not in indexes:
                indexes[day] = await timetable_service.index_slots_for_day(db, day)
            slot = indexes[day].get((s.subject_id, s.start_time))
            slot_id = slot.id if slot else None
        out.append(_to_response(*row, timetable_slot_id=slot_id))
    return out


async def _load(db: AsyncSession, session_id: UUID) -> AttendanceSession:
    session = await db.get(AttendanceSession, session_id)
    if not session:
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    return session


async def _ensure_can_manage(db: AsyncSession, current_user: CurrentUser, session: AttendanceSession) -> None:
    """Admins manage any session; teaching staff only their own when ownership is enforced."""
    if current_user.role == UserRole.ADMIN.value or not settings.enforce_session_ownership:
        return
    teacher = await find_teacher_for_user(db, current_user.id)
    if teacher is None or session.teacher_id != teacher.id:
        raise ServiceError("You can only manage your own sessions", status.HTTP_403_FORBIDDEN)


async def get_session(db: AsyncSession, session_id: UUID) -> SessionResponse:
    result = await db.execute(_session_query().where(AttendanceSession.id == session_id))
    row = result.first()
    if not row:
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    return (await _responses_with_slots(db, [row]))[0]


async def list_sessions(
    db: AsyncSession,
    *,
    teacher_id: Optional[UUID] = None,
    subject_id: Optional[UUID] = None,
    session_date: Optional[date] = None,
    status_filter: Optional[SessionStatus] = None,
    limit: int = 100,
) -> List[SessionResponse]:
    stmt = _session_query()
    if teacher_id is not None:
        stmt = stmt.where(AttendanceSession.teacher_id == teacher_id)
    if subject_id is not None:
        stmt = stmt.where(AttendanceSession.subject_id == subject_id)
    if session_date is not None:
        stmt = stmt.where(AttendanceSession.session_date == session_date)
    if status_filter is not None:
        stmt = stmt.where(AttendanceSession.status == status_filter.value)
    stmt = stmt.order_by(
        AttendanceSession.session_date.desc(), AttendanceSession.start_time.desc()
    ).limit(limit)
    result = await db.execute(stmt)
    return await _responses_with_slots(db, result.all())


async def create_session(
    db: AsyncSession, current_user: CurrentUser, payload: SessionCreate
) -> SessionResponse:
    values = {
        "subject_id": payload.subject_id,
        "start_time": payload.start_time,
        "end_time": payload.end_time,
        "room": payload.room,
        "section": payload.section,
        "batch": payload.batch,
    }
    if payload.timetable_slot_id is not None:
        slot = await db.get(TimetableSlot, payload.timetable_slot_id)
        if not slot:
            raise ServiceError("Invalid timetable slot", status.HTTP_400_BAD_REQUEST)
        for key in values:
            if values[key] is None:
                values[key] = getattr(slot, key)
    if values["subject_id"] is None:
        raise ServiceError("subject_id or timetable_slot_id is required", status.HTTP_400_BAD_REQUEST)
    if not await db.get(Subject, values["subject_id"]):
        raise ServiceError("Invalid subject", status.HTTP_400_BAD_REQUEST)
    if values["start_time"] and values["end_time"] and values["end_time"] <= values["start_time"]:
        raise ServiceError("end_time must be after start_time", status.HTTP_400_BAD_REQUEST)

    if current_user.role == UserRole.ADMIN.value:
        if payload.teacher_id is None:
            raise ServiceError("teacher_id is required", status.HTTP_400_BAD_REQUEST)
        if not await db.get(Teacher, payload.teacher_id):
            raise ServiceError("Invalid teacher", status.HTTP_400_BAD_REQUEST)
        teacher_id = payload.teacher_id
    else:
        teacher = await get_teacher_for_user(db, current_user.id)
        teacher_id = teacher.id
        if settings.enforce_session_ownership:
            if payload.teacher_id is not None and payload.teacher_id != teacher.id:
                raise ServiceError("You can only create your own sessions", status.HTTP_403_FORBIDDEN)
            if not await teacher_has_allocation(db, teacher.id, values["subject_id"]):
                raise ServiceError("You are not allocated to this subject", status.HTTP_403_FORBIDDEN)
        elif payload.teacher_id is not None:
            teacher_id = payload.teacher_id

    session = AttendanceSession(
        teacher_id=teacher_id,
        session_date=payload.session_date or date.today(),
        status=payload.status.value,
        **values,
    )
    db.add(session)
    await db.commit()
    logger.info("Session %s created (%s) by %s", session.id, session.status, current_user.id)
    return await get_session(db, session.id)


async def update_session(
    db: AsyncSession, current_user: CurrentUser, session_id: UUID, payload: SessionUpdate
) -> SessionResponse:
    session = await _load(db, session_id)
    await _ensure_can_manage(db, current_user, session)
    changes = payload.model_dump(exclude_unset=True)

    new_status = changes.pop("status", None)
    if new_status is not None:
        ensure_transition(session.status, new_status.value)
    if session.status in (SessionStatus.COMPLETED.value, SessionStatus.CANCELLED.value) and changes:
        raise ServiceError(f"A {session.status} session cannot be edited", status.HTTP_409_CONFLICT)

    for key, value in changes.items():
        if key in ("room", "section", "batch") and isinstance(value, str):
            value = value.strip() or None
        setattr(session, key, value)
    if session.start_time and session.end_time and session.end_time <= session.start_time:
        raise ServiceError("end_time must be after start_time", status.HTTP_400_BAD_REQUEST)
    if new_status is not None and new_status.value != session.status:
        logger.info("Session %s: %s -> %s", session.id, session.status, new_status.value)
        session.status = new_status.value
    await db.commit()
    return await get_session(db, session_id)


async def cancel_session(db: AsyncSession, current_user: CurrentUser, session_id: UUID) -> SessionResponse:
    session = await _load(db, session_id)
    await _ensure_can_manage(db, current_user, session)
    ensure_transition(session.status, SessionStatus.CANCELLED.value)
    if session.status != SessionStatus.CANCELLED.value:
        logger.info("Session %s: %s -> cancelled", session.id, session.status)
        session.status = SessionStatus.CANCELLED.value
        await db.commit()
    return await get_session(db, session_id)


async def _records_by_student(db: AsyncSession, session_id: UUID) -> Dict[UUID, AttendanceRecord]:
    result = await db.execute(select(AttendanceRecord).where(AttendanceRecord.session_id == session_id))
    return {r.student_id: r for r in result.scalars().all()}


async def get_roster(db: AsyncSession, current_user: CurrentUser, session_id: UUID) -> RosterResponse:
    session = await _load(db, session_id)
    await _ensure_can_manage(db, current_user, session)
    subject = await db.get(Subject, session.subject_id)
    roster = await resolve_roster(db, session, subject)
    records = await _records_by_student(db, session.id)

    entries = []
    for m in roster.students:
        rec = records.get(m.student.id)
        entries.append(
            RosterEntry(
                student_id=m.student.id,
                roll_number=m.student.roll_number,
                full_name=m.full_name,
                section=m.student.section,
                batch=m.student.batch,
                status=rec.status if rec else None,
                notes=rec.notes if rec else None,
                record_id=rec.id if rec else None,
            )
        )
    slot = await timetable_service.match_timetable_slot(
        db, session.subject_id, session.session_date, session.start_time
    )
    return RosterResponse(
        session=await get_session(db, session.id),
        tier=roster.tier,
        reason=roster.reason,
        timetable_slot=slot,
        students=entries,
        marked_count=sum(1 for e in entries if e.record_id is not None),
    )


async def _ensure_students_exist(db: AsyncSession, student_ids: Sequence[UUID]) -> None:
    result = await db.execute(select(Student.id).where(Student.id.in_(list(student_ids))))
    unknown = set(student_ids) - set(result.scalars().all())
    if unknown:
        raise ServiceError(
            f"Unknown student(s): {', '.join(sorted(str(u) for u in unknown))}",
            status.HTTP_400_BAD_REQUEST,
        )


def _upsert(
    db: AsyncSession,
    existing: Dict[UUID, AttendanceRecord],
    session_id: UUID,
    student_id: UUID,
    status_value: str,
    notes: Optional[str],
) -> AttendanceRecord:
    now = datetime.now(timezone.utc)
    rec = existing.get(student_id)
    if rec is None:
        rec = AttendanceRecord(
            session_id=session_id, student_id=student_id, status=status_value, notes=notes, marked_at=now
        )
        db.add(rec)
        existing[student_id] = rec
    else:
        rec.status = status_value
        rec.notes = notes
        rec.marked_at = now
    return rec


async def _commit_marks(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "Attendance was modified concurrently, please resubmit", status.HTTP_409_CONFLICT
        )


async def mark_attendance(
    db: AsyncSession, current_user: CurrentUser, session_id: UUID, payload: BulkMarkRequest
) -> BulkMarkResponse:
    """
    Upsert one record per (session, student) and finalize the session as completed. Resubmitting
    overwrites earlier statuses, so completed sessions can still be corrected.
    """
    session = await _load(db, session_id)
    await _ensure_can_manage(db, current_user, session)
    ensure_markable(session.status)

    # Last entry wins for a repeated student
    marks: Dict[UUID, Tuple[str, Optional[str]]] = {
        r.student_id: (r.status.value, r.notes) for r in payload.records
    }
    await _ensure_students_exist(db, list(marks))

    existing = await _records_by_student(db, session.id)
    for student_id, (status_value, notes) in marks.items():
        _upsert(db, existing, session.id, student_id, status_value, notes)
    previous = session.status
    session.status = SessionStatus.COMPLETED.value
    await _commit_marks(db)

    subject = await db.get(Subject, session.subject_id)
    roster = await resolve_roster(db, session, subject)
    unmarked = sum(1 for m in roster.students if m.student.id not in existing)
    logger.info(
        "Session %s: %d marked, %d of %d roster unmarked (%s -> completed)",
        session.id, len(marks), unmarked, len(roster.students), previous,
    )
    return BulkMarkResponse(
        session_id=session.id,
        status=SessionStatus.COMPLETED,
        marked=len(marks),
        roster_size=len(roster.students),
        unmarked_count=unmarked,
    )


async def mark_single(
    db: AsyncSession,
    current_user: CurrentUser,
    session_id: UUID,
    student_id: UUID,
    payload: SingleMarkRequest,
) -> AttendanceRecordResponse:
    """Upsert one record; the session status is left as is."""
    session = await _load(db, session_id)
    await _ensure_can_manage(db, current_user, session)
    ensure_markable(session.status)
    await _ensure_students_exist(db, [student_id])

    existing = await _records_by_student(db, session.id)
    rec = _upsert(db, existing, session.id, student_id, payload.status.value, payload.notes)
    await _commit_marks(db)
    await db.refresh(rec)
    return AttendanceRecordResponse.model_validate(rec)


async def export_session_csv(db: AsyncSession, current_user: CurrentUser, session_id: UUID) -> Tuple[str, str]:
    roster = await get_roster(db, current_user, session_id)
    session = roster.session
    header = ["Roll Number", "Name", "Section", "Batch", "Status", "Notes"]
    rows = [
        [e.roll_number, e.full_name, e.section, e.batch, e.status.value if e.status else "not marked", e.notes]
        for e in roster.students
    ]
    filename = f"attendance_{session.subject_code}_{session.session_date.isoformat()}.csv"
    return build_csv(header, rows), filename
