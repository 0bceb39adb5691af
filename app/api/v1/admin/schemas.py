from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StatsResponse(BaseModel):
    users: int
    students: int
    teachers: int
    departments: int
    subjects: int
    allocations: int
    sessions: int


class AdvisorAssign(BaseModel):
    user_id: UUID
    department_id: Optional[UUID] = None
    section: Optional[str] = Field(None, max_length=10)
    semester: Optional[int] = Field(None, ge=1, le=8)
    academic_year: Optional[str] = Field(None, max_length=20)


class AdvisorResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: Optional[str] = None
    email: Optional[str] = None
    department_id: Optional[UUID] = None
    section: Optional[str] = None
    semester: Optional[int] = None
    academic_year: Optional[str] = None
    created_at: datetime
