from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.students.schemas import StudentAttendanceResponse, StudentResponse


class AdvisorScope(BaseModel):
    semester: Optional[int] = None
    section: Optional[str] = None
    department_id: Optional[UUID] = None


class CohortStudent(StudentResponse):
    total_classes: int = 0
    attended: int = 0
    percentage: Optional[int] = None
    at_risk: bool = False


class CohortStudentsResponse(BaseModel):
    scope: AdvisorScope
    threshold: int
    students: List[CohortStudent]


class ClassHealthResponse(BaseModel):
    scope: AdvisorScope
    threshold: int
    total_students: int
    students_with_data: int
    average_percentage: Optional[int] = None
    defaulters_count: int


class NoteCreate(BaseModel):
    student_id: UUID
    note: str = Field(..., min_length=1)
    action_taken: Optional[str] = None


class NoteResponse(BaseModel):
    id: UUID
    student_id: UUID
    advisor_user_id: UUID
    note: str
    action_taken: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StudentDetailResponse(StudentAttendanceResponse):
    notes: List[NoteResponse] = []
