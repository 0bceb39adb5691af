from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.api.v1.allocations.schemas import AllocationResponse
from app.api.v1.attendance.schemas import SessionResponse
from app.api.v1.timetables.schemas import TimetableSlotResponse
from app.core.enums import SessionStatus


class TeacherClassesResponse(BaseModel):
    teacher_id: UUID
    allocations: List[AllocationResponse]
    today_sessions: List[SessionResponse]


class TimetableEntry(BaseModel):
    """A slot of the day with the session started from it, if any."""

    slot: TimetableSlotResponse
    session_id: Optional[UUID] = None
    session_status: Optional[SessionStatus] = None


class SubjectReport(BaseModel):
    subject_id: UUID
    subject_code: str
    subject_name: str
    semester: Optional[int] = None
    department: Optional[str] = None
    total_sessions: int
    total_students: int
    avg_attendance: Optional[int] = None
    students_below_threshold: int
