from datetime import date
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.teacher.service import attach_sessions
from app.api.v1.timetables import service as timetable_service
from app.core.models import AttendanceRecord, Student

from .schemas import StudentTimetableEntry


async def get_timetable(db: AsyncSession, student: Student, on_date: date) -> List[StudentTimetableEntry]:
    """
    The student's slots for the day: own semester and section, whole-section slots or the
    student's batch, own department when one is set.
    """
    slots = await timetable_service.list_timetable_slots(
        db,
        day_of_week=on_date.weekday(),
        section=student.section,
        semester=student.semester,
        department_id=student.department_id,
    )
    slots = [s for s in slots if s.batch is None or s.batch == student.batch]
    entries = await attach_sessions(db, slots, on_date)

    session_ids = [e.session_id for e in entries if e.session_id is not None]
    marks = {}
    if session_ids:
        result = await db.execute(
            select(AttendanceRecord.session_id, AttendanceRecord.status).where(
                AttendanceRecord.student_id == student.id,
                AttendanceRecord.session_id.in_(session_ids),
            )
        )
        marks = dict(result.all())
    return [
        StudentTimetableEntry(**e.model_dump(), attendance_status=marks.get(e.session_id))
        for e in entries
    ]
