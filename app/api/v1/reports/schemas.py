from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from .aggregation import Tally


class AttendanceSummary(BaseModel):
    total: int = 0
    attended: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    percentage: Optional[int] = None

    @classmethod
    def from_tally(cls, tally: Tally) -> "AttendanceSummary":
        return cls(
            total=tally.total,
            attended=tally.attended,
            present=tally.present,
            absent=tally.absent,
            late=tally.late,
            percentage=tally.percentage,
        )


class DefaulterEntry(BaseModel):
    id: UUID
    roll_number: str
    name: str
    email: str
    semester: int
    section: Optional[str] = None
    batch: Optional[str] = None
    department: Optional[str] = None
    department_code: Optional[str] = None
    total_classes: int
    attended: int
    percentage: int


class DefaulterReport(BaseModel):
    total_students: int
    defaulters_count: int
    threshold: int
    defaulters: List[DefaulterEntry]


class CompiledSubject(BaseModel):
    id: UUID
    code: str
    name: str


class CompiledStudentRow(BaseModel):
    student_id: UUID
    roll_number: str
    name: str
    section: Optional[str] = None
    batch: Optional[str] = None
    # keyed by subject id
    subject_attendance: Dict[UUID, AttendanceSummary]
    overall: AttendanceSummary


class CompiledReport(BaseModel):
    semester: int
    subjects: List[CompiledSubject]
    students: List[CompiledStudentRow]
