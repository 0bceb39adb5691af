import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.config import settings
from app.core.csv_io import build_csv, build_xlsx
from app.core.enums import ExportFormat, SessionStatus
from app.core.exceptions import ServiceError
from app.core.models import AttendanceRecord, AttendanceSession, Department, Student, Subject

from . import aggregation
from .aggregation import AttendanceTriple, Standing
from .schemas import (
    AttendanceSummary,
    CompiledReport,
    CompiledStudentRow,
    CompiledSubject,
    DefaulterEntry,
    DefaulterReport,
)

logger = logging.getLogger(__name__)


@dataclass
class CohortMember:
    student: Student
    full_name: str
    email: str
    department_code: Optional[str] = None
    department_name: Optional[str] = None


async def fetch_cohort(
    db: AsyncSession,
    *,
    semester: Optional[int] = None,
    department_id: Optional[UUID] = None,
    section: Optional[str] = None,
    batch: Optional[str] = None,
    student_ids: Optional[Iterable[UUID]] = None,
) -> List[CohortMember]:
    """Students matching every given filter with their user and department, by roll number."""
    stmt = (
        select(Student, User.full_name, User.email, Department.code, Department.name)
        .join(User, User.id == Student.user_id)
        .outerjoin(Department, Department.id == Student.department_id)
    )
    if semester is not None:
        stmt = stmt.where(Student.semester == semester)
    if department_id is not None:
        stmt = stmt.where(Student.department_id == department_id)
    if section:
        stmt = stmt.where(Student.section == section)
    if batch:
        stmt = stmt.where(Student.batch == batch)
    if student_ids is not None:
        stmt = stmt.where(Student.id.in_(list(student_ids)))
    stmt = stmt.order_by(Student.roll_number)
    result = await db.execute(stmt)
    return [CohortMember(*row) for row in result.all()]


async def fetch_attendance_triples(
    db: AsyncSession,
    *,
    student_ids: Optional[Sequence[UUID]] = None,
    subject_ids: Optional[Sequence[UUID]] = None,
    teacher_id: Optional[UUID] = None,
) -> List[AttendanceTriple]:
    """
    Every (student, subject, status) record of non-cancelled sessions within scope, in one query.
    An empty id list means an empty scope.
    """
    if (student_ids is not None and not student_ids) or (subject_ids is not None and not subject_ids):
        return []
    stmt = (
        select(AttendanceRecord.student_id, AttendanceSession.subject_id, AttendanceRecord.status)
        .join(AttendanceSession, AttendanceSession.id == AttendanceRecord.session_id)
        .where(AttendanceSession.status != SessionStatus.CANCELLED.value)
    )
    if student_ids is not None:
        stmt = stmt.where(AttendanceRecord.student_id.in_(list(student_ids)))
    if subject_ids is not None:
        stmt = stmt.where(AttendanceSession.subject_id.in_(list(subject_ids)))
    if teacher_id is not None:
        stmt = stmt.where(AttendanceSession.teacher_id == teacher_id)
    result = await db.execute(stmt)
    return [tuple(row) for row in result.all()]


async def cohort_standings(
    db: AsyncSession, members: Sequence[CohortMember]
) -> List[Standing]:
    triples = await fetch_attendance_triples(db, student_ids=[m.student.id for m in members])
    tallies = aggregation.by_student(triples)
    return aggregation.standings(
        [(m.student.id, m.student.roll_number) for m in members], tallies
    )


async def get_defaulters(
    db: AsyncSession,
    *,
    threshold: Optional[int] = None,
    semester: Optional[int] = None,
    department_id: Optional[UUID] = None,
    section: Optional[str] = None,
) -> DefaulterReport:
    if threshold is None:
        threshold = settings.default_attendance_threshold
    members = await fetch_cohort(db, semester=semester, department_id=department_id, section=section)
    by_id = {m.student.id: m for m in members}
    rows = aggregation.select_defaulters(await cohort_standings(db, members), threshold)
    defaulters = []
    for row in rows:
        m = by_id[row.student_id]
        defaulters.append(
            DefaulterEntry(
                id=m.student.id,
                roll_number=m.student.roll_number,
                name=m.full_name,
                email=m.email,
                semester=m.student.semester,
                section=m.student.section,
                batch=m.student.batch,
                department=m.department_name,
                department_code=m.department_code,
                total_classes=row.tally.total,
                attended=row.tally.attended,
                percentage=row.percentage,
            )
        )
    return DefaulterReport(
        total_students=len(members),
        defaulters_count=len(defaulters),
        threshold=threshold,
        defaulters=defaulters,
    )


def _pct_text(pct: Optional[int]) -> str:
    return "-" if pct is None else f"{pct}%"


def defaulters_csv(report: DefaulterReport) -> str:
    header = [
        "Roll Number", "Name", "Email", "Department", "Semester", "Section", "Batch",
        "Attended", "Total Classes", "Attendance %",
    ]
    rows = [
        [
            d.roll_number, d.name, d.email, d.department_code, d.semester, d.section, d.batch,
            d.attended, d.total_classes, f"{d.percentage}%",
        ]
        for d in report.defaulters
    ]
    return build_csv(header, rows)


async def get_compiled(
    db: AsyncSession,
    *,
    semester: int,
    department_id: Optional[UUID] = None,
    section: Optional[str] = None,
) -> CompiledReport:
    subject_stmt = select(Subject).where(Subject.semester == semester)
    if department_id is not None:
        subject_stmt = subject_stmt.where(Subject.department_id == department_id)
    subjects = (await db.execute(subject_stmt.order_by(Subject.code))).scalars().all()
    members = await fetch_cohort(db, semester=semester, department_id=department_id, section=section)

    if not subjects or not members:
        return CompiledReport(semester=semester, subjects=[], students=[])

    subject_ids = [s.id for s in subjects]
    triples = await fetch_attendance_triples(
        db, student_ids=[m.student.id for m in members], subject_ids=subject_ids
    )
    matrix = aggregation.compiled_matrix(
        [(m.student.id, m.student.roll_number) for m in members], subject_ids, triples
    )
    students = []
    for m, row in zip(members, matrix):
        students.append(
            CompiledStudentRow(
                student_id=m.student.id,
                roll_number=m.student.roll_number,
                name=m.full_name,
                section=m.student.section,
                batch=m.student.batch,
                subject_attendance={
                    sid: AttendanceSummary.from_tally(cell) for sid, cell in zip(subject_ids, row.cells)
                },
                overall=AttendanceSummary.from_tally(row.overall),
            )
        )
    return CompiledReport(
        semester=semester,
        subjects=[CompiledSubject(id=s.id, code=s.code, name=s.name) for s in subjects],
        students=students,
    )


def _compiled_table(report: CompiledReport) -> Tuple[List[str], List[list]]:
    header = ["Roll Number", "Name", "Section", "Batch"] + [s.code for s in report.subjects] + ["Overall %"]
    rows = []
    for st in report.students:
        cells = [_pct_text(st.subject_attendance[s.id].percentage) for s in report.subjects]
        rows.append(
            [st.roll_number, st.name, st.section, st.batch] + cells + [_pct_text(st.overall.percentage)]
        )
    return header, rows


async def export_compiled(
    db: AsyncSession,
    *,
    semester: int,
    department_id: Optional[UUID] = None,
    section: Optional[str] = None,
    fmt: ExportFormat = ExportFormat.CSV,
) -> Tuple[object, str]:
    """Return (content, filename) for the compiled matrix in the requested format."""
    report = await get_compiled(db, semester=semester, department_id=department_id, section=section)
    if not report.students:
        raise ServiceError("No data found", status.HTTP_404_NOT_FOUND)
    header, rows = _compiled_table(report)
    stem = f"compiled_attendance_sem{semester}_{date.today().isoformat()}"
    if fmt == ExportFormat.XLSX:
        return build_xlsx(f"Semester {semester}", header, rows), f"{stem}.xlsx"
    return build_csv(header, rows), f"{stem}.csv"


async def export_subject_report(db: AsyncSession, subject_id: UUID) -> Tuple[str, str]:
    """Per-student attended/total for one subject over its semester (and department) cohort."""
    subject = await db.get(Subject, subject_id)
    if not subject:
        raise ServiceError("Subject not found", status.HTTP_404_NOT_FOUND)
    if subject.semester is None and subject.department_id is None:
        raise ServiceError("No students found for this subject", status.HTTP_404_NOT_FOUND)
    members = await fetch_cohort(db, semester=subject.semester, department_id=subject.department_id)
    if not members:
        raise ServiceError("No students found for this subject", status.HTTP_404_NOT_FOUND)

    triples = await fetch_attendance_triples(
        db, student_ids=[m.student.id for m in members], subject_ids=[subject.id]
    )
    tallies = aggregation.by_student(triples)
    header = ["Roll No", "Name", f"{subject.code} (Att/Tot)", f"{subject.code} %"]
    rows = []
    for m in members:
        tally = tallies.get(m.student.id, aggregation.Tally())
        rows.append([m.student.roll_number, m.full_name, f"{tally.attended}/{tally.total}", _pct_text(tally.percentage)])
    return build_csv(header, rows), f"{subject.code}_Report_{date.today().isoformat()}.csv"
