from datetime import date, datetime, time
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator

from app.api.v1.timetables.schemas import TimetableSlotResponse, parse_time_24
from app.core.enums import AttendanceStatus, RosterTier, SessionStatus


def _optional_time(v: Optional[Union[str, time]]) -> Optional[time]:
    if v is None or v == "":
        return None
    return parse_time_24(v)


class SessionCreate(BaseModel):
    """Start a class meeting ad hoc or from a timetable slot (slot fields fill what is not given)."""

    subject_id: Optional[UUID] = None
    timetable_slot_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = Field(None, description="Defaults to the caller's teacher profile")
    session_date: Optional[date] = None
    start_time: Optional[Union[str, time]] = Field(None, description="24-hour format, e.g. 09:00")
    end_time: Optional[Union[str, time]] = Field(None, description="24-hour format, e.g. 09:45")
    room: Optional[str] = Field(None, max_length=50)
    section: Optional[str] = Field(None, max_length=10)
    batch: Optional[str] = Field(None, max_length=10)
    status: SessionStatus = SessionStatus.SCHEDULED

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v):
        return _optional_time(v)

    @field_validator("status")
    @classmethod
    def initial_status(cls, v: SessionStatus) -> SessionStatus:
        if v not in (SessionStatus.SCHEDULED, SessionStatus.ACTIVE):
            raise ValueError("A session starts as scheduled or active")
        return v


class SessionUpdate(BaseModel):
    start_time: Optional[Union[str, time]] = None
    end_time: Optional[Union[str, time]] = None
    room: Optional[str] = Field(None, max_length=50)
    section: Optional[str] = Field(None, max_length=10)
    batch: Optional[str] = Field(None, max_length=10)
    status: Optional[SessionStatus] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v):
        return _optional_time(v)


class SessionResponse(BaseModel):
    id: UUID
    subject_id: UUID
    subject_code: Optional[str] = None
    subject_name: Optional[str] = None
    teacher_id: Optional[UUID] = None
    teacher_name: Optional[str] = None
    session_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    room: Optional[str] = None
    section: Optional[str] = None
    batch: Optional[str] = None
    status: SessionStatus
    # Slot on the same weekday with the same subject and start time, if any
    timetable_slot_id: Optional[UUID] = None
    created_at: datetime

    @field_serializer("start_time", "end_time")
    def serialize_time_24(self, t: Optional[time]) -> Optional[str]:
        return t.strftime("%H:%M") if t else None


class RecordMark(BaseModel):
    student_id: UUID
    status: AttendanceStatus
    notes: Optional[str] = None


class BulkMarkRequest(BaseModel):
    records: List[RecordMark] = Field(..., min_length=1)


class SingleMarkRequest(BaseModel):
    status: AttendanceStatus
    notes: Optional[str] = None


class BulkMarkResponse(BaseModel):
    session_id: UUID
    status: SessionStatus
    marked: int
    roster_size: int
    # Roster members without a record after this submission
    unmarked_count: int


class AttendanceRecordResponse(BaseModel):
    id: UUID
    session_id: UUID
    student_id: UUID
    status: AttendanceStatus
    notes: Optional[str] = None
    marked_at: datetime

    class Config:
        from_attributes = True


class RosterEntry(BaseModel):
    student_id: UUID
    roll_number: str
    full_name: str
    section: Optional[str] = None
    batch: Optional[str] = None
    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = None
    record_id: Optional[UUID] = None


class RosterResponse(BaseModel):
    session: SessionResponse
    tier: Optional[RosterTier] = None
    # insufficient_scope | empty_class when no student matched
    reason: Optional[str] = None
    timetable_slot: Optional[TimetableSlotResponse] = None
    students: List[RosterEntry]
    marked_count: int
