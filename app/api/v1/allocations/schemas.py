from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AllocationCreate(BaseModel):
    teacher_id: UUID
    subject_id: UUID
    section: str = Field(..., min_length=1, max_length=10)
    batch: Optional[str] = Field(None, max_length=10)
    academic_year: str = Field(..., min_length=1, max_length=20, description="e.g. 2025-26")


class AllocationResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    teacher_name: Optional[str] = None
    employee_id: Optional[str] = None
    subject_id: UUID
    subject_code: str
    subject_name: str
    subject_semester: Optional[int] = None
    section: Optional[str] = None
    batch: Optional[str] = None
    academic_year: str
    created_at: datetime
