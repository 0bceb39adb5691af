from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.api.v1.reports.schemas import AttendanceSummary
from app.core.enums import AttendanceStatus


class StudentCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    roll_number: str = Field(..., min_length=1, max_length=50)
    # Defaults to the roll number, as with CSV import
    password: Optional[str] = Field(None, min_length=6)
    semester: int = Field(1, ge=1, le=8)
    section: Optional[str] = Field(None, max_length=10)
    batch: Optional[str] = Field(None, max_length=10)
    department_id: Optional[UUID] = None


class StudentResponse(BaseModel):
    id: UUID
    user_id: UUID
    roll_number: str
    full_name: str
    email: str
    semester: int
    section: Optional[str] = None
    batch: Optional[str] = None
    department_id: Optional[UUID] = None
    department_code: Optional[str] = None


class StudentImportResponse(BaseModel):
    success: bool = True
    created: int
    errors: List[str] = []


class PromoteRequest(BaseModel):
    from_semester: int = Field(..., ge=1, le=8)
    to_semester: int = Field(..., ge=1, le=8)
    # Students held back in from_semester
    retain_ids: List[UUID] = []


class PromoteResponse(BaseModel):
    promoted: int
    retained: int


class SubjectAttendance(AttendanceSummary):
    subject_id: UUID
    subject_code: str
    subject_name: str
    semester: Optional[int] = None


class StudentAttendanceResponse(BaseModel):
    student: StudentResponse
    overall: AttendanceSummary
    subjects: List[SubjectAttendance]


class SessionHistoryEntry(BaseModel):
    session_id: UUID
    session_date: date
    start_time: Optional[time] = None
    # None when the student was not marked in this session
    status: Optional[AttendanceStatus] = None
    marked_at: Optional[datetime] = None


class SubjectHistoryResponse(BaseModel):
    student_id: UUID
    subject_id: UUID
    subject_code: str
    subject_name: str
    summary: AttendanceSummary
    sessions: List[SessionHistoryEntry]
