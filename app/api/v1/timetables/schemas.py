from datetime import datetime, time
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator


def parse_time_24(v: Union[str, time]) -> time:
    """Parse 24-hour time string (HH:MM or HH:MM:SS) to time."""
    if isinstance(v, time):
        return v
    if isinstance(v, str):
        v = v.strip()
        if len(v) == 5:  # HH:MM
            return datetime.strptime(v, "%H:%M").time()
        return datetime.strptime(v, "%H:%M:%S").time()
    raise ValueError("start_time/end_time must be 24-hour string (e.g. 09:00, 09:45) or time")


class TimetableSlotCreate(BaseModel):
    subject_id: UUID
    teacher_id: Optional[UUID] = None
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday .. 6=Sunday")
    start_time: Union[str, time] = Field(..., description="24-hour format, e.g. 09:00")
    end_time: Union[str, time] = Field(..., description="24-hour format, e.g. 09:45")
    room: Optional[str] = Field(None, max_length=50)
    section: Optional[str] = Field(None, max_length=10)
    semester: Optional[int] = Field(None, ge=1, le=8)
    batch: Optional[str] = Field(None, max_length=10)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v: Union[str, time]) -> time:
        return parse_time_24(v)


class TimetableSlotUpdate(BaseModel):
    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[Union[str, time]] = Field(None, description="24-hour format, e.g. 09:00")
    end_time: Optional[Union[str, time]] = Field(None, description="24-hour format, e.g. 09:45")
    room: Optional[str] = Field(None, max_length=50)
    section: Optional[str] = Field(None, max_length=10)
    semester: Optional[int] = Field(None, ge=1, le=8)
    batch: Optional[str] = Field(None, max_length=10)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v: Optional[Union[str, time]]) -> Optional[time]:
        if v is None:
            return None
        return parse_time_24(v)


class TimetableSlotResponse(BaseModel):
    id: UUID
    subject_id: UUID
    subject_code: Optional[str] = None
    subject_name: Optional[str] = None
    teacher_id: Optional[UUID] = None
    teacher_name: Optional[str] = None
    day_of_week: int
    start_time: time
    end_time: time
    room: Optional[str] = None
    section: Optional[str] = None
    semester: Optional[int] = None
    batch: Optional[str] = None
    created_at: datetime

    @field_serializer("start_time", "end_time")
    def serialize_time_24(self, t: time) -> str:
        """Output as 24-hour string HH:MM (e.g. 09:00, 09:45)."""
        return t.strftime("%H:%M")
