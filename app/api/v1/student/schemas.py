from typing import Optional
from uuid import UUID

from app.api.v1.teacher.schemas import TimetableEntry
from app.core.enums import AttendanceStatus


class StudentTimetableEntry(TimetableEntry):
    attendance_status: Optional[AttendanceStatus] = None
