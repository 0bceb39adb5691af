from collections import defaultdict
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.allocations import service as allocation_service
from app.api.v1.attendance import service as attendance_service
from app.api.v1.reports import aggregation
from app.api.v1.reports.service import fetch_attendance_triples
from app.api.v1.timetables import service as timetable_service
from app.core.config import settings
from app.core.enums import SessionStatus
from app.core.models import AttendanceSession, Department, Subject, Teacher

from .schemas import SubjectReport, TeacherClassesResponse, TimetableEntry


async def get_classes(db: AsyncSession, teacher: Teacher) -> TeacherClassesResponse:
    allocations = await allocation_service.list_allocations(db, teacher_id=teacher.id)
    today_sessions = await attendance_service.list_sessions(
        db, teacher_id=teacher.id, session_date=date.today()
    )
    return TeacherClassesResponse(
        teacher_id=teacher.id, allocations=allocations, today_sessions=today_sessions
    )


async def attach_sessions(
    db: AsyncSession, slots, on_date: date, teacher_id: Optional[UUID] = None
) -> List[TimetableEntry]:
    """Pair each slot with the session of `on_date` that has the same subject and start time."""
    stmt = select(AttendanceSession).where(AttendanceSession.session_date == on_date)
    if teacher_id is not None:
        stmt = stmt.where(AttendanceSession.teacher_id == teacher_id)
    sessions = (await db.execute(stmt)).scalars().all()
    by_key = defaultdict(list)
    for s in sessions:
        if s.start_time is not None:
            by_key[(s.subject_id, s.start_time)].append(s)
    entries = []
    for slot in slots:
        candidates = by_key.get((slot.subject_id, slot.start_time), [])
        # Same subject and hour in another section is a different class
        session = next((s for s in candidates if s.section == slot.section), None) or next(
            (s for s in candidates if s.section is None or slot.section is None), None
        )
        entries.append(
            TimetableEntry(
                slot=slot,
                session_id=session.id if session else None,
                session_status=session.status if session else None,
            )
        )
    return entries


async def get_timetable(db: AsyncSession, teacher: Teacher, on_date: date) -> List[TimetableEntry]:
    slots = await timetable_service.list_timetable_slots(
        db, day_of_week=on_date.weekday(), teacher_id=teacher.id
    )
    return await attach_sessions(db, slots, on_date, teacher_id=teacher.id)


async def get_reports(db: AsyncSession, teacher: Teacher) -> List[SubjectReport]:
    """Per allocated subject, over this teacher's non-cancelled sessions."""
    allocations = await allocation_service.list_allocations(db, teacher_id=teacher.id)
    subject_ids = list(dict.fromkeys(a.subject_id for a in allocations))
    if not subject_ids:
        return []

    subjects = (
        await db.execute(
            select(Subject, Department.name)
            .outerjoin(Department, Department.id == Subject.department_id)
            .where(Subject.id.in_(subject_ids))
        )
    ).all()
    session_counts = dict(
        (
            await db.execute(
                select(AttendanceSession.subject_id, func.count(AttendanceSession.id))
                .where(
                    AttendanceSession.teacher_id == teacher.id,
                    AttendanceSession.subject_id.in_(subject_ids),
                    AttendanceSession.status != SessionStatus.CANCELLED.value,
                )
                .group_by(AttendanceSession.subject_id)
            )
        ).all()
    )
    triples = await fetch_attendance_triples(db, subject_ids=subject_ids, teacher_id=teacher.id)
    cells = aggregation.by_student_subject(triples)
    threshold = settings.default_attendance_threshold

    reports = []
    for subject, department_name in sorted(subjects, key=lambda row: row[0].code):
        pcts = [t.percentage for (_, sid), t in cells.items() if sid == subject.id]
        reports.append(
            SubjectReport(
                subject_id=subject.id,
                subject_code=subject.code,
                subject_name=subject.name,
                semester=subject.semester,
                department=department_name,
                total_sessions=session_counts.get(subject.id, 0),
                total_students=len(pcts),
                avg_attendance=aggregation.average_percentage(pcts),
                students_below_threshold=sum(1 for p in pcts if aggregation.is_below_threshold(p, threshold)),
            )
        )
    return reports
