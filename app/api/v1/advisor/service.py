"""
Advisor portal. Every query is confined to the advisor's cohort: the (semester, section,
department) recorded on their ClassAdvisor row.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.reports import aggregation
from app.api.v1.reports.schemas import DefaulterReport
from app.api.v1.reports.service import (
    cohort_standings,
    fetch_attendance_triples,
    fetch_cohort,
    get_defaulters,
)
from app.api.v1.students.service import get_student_attendance, to_response
from app.core.config import settings
from app.core.csv_io import build_csv
from app.core.enums import AdvisorReportType
from app.core.exceptions import ServiceError
from app.core.models import AdvisorNote, ClassAdvisor, Student, Subject

from .schemas import (
    AdvisorScope,
    ClassHealthResponse,
    CohortStudent,
    CohortStudentsResponse,
    NoteCreate,
    NoteResponse,
    StudentDetailResponse,
)

logger = logging.getLogger(__name__)

NOTES_LIMIT = 50


def scope_of(advisor: ClassAdvisor) -> AdvisorScope:
    if advisor.semester is None and not advisor.section and advisor.department_id is None:
        raise ServiceError("Advisor has no assigned class", status.HTTP_400_BAD_REQUEST)
    return AdvisorScope(
        semester=advisor.semester, section=advisor.section, department_id=advisor.department_id
    )


async def _members(db: AsyncSession, scope: AdvisorScope, batch: Optional[str] = None):
    return await fetch_cohort(
        db,
        semester=scope.semester,
        department_id=scope.department_id,
        section=scope.section,
        batch=batch,
    )


async def list_cohort_students(db: AsyncSession, advisor: ClassAdvisor) -> CohortStudentsResponse:
    scope = scope_of(advisor)
    threshold = settings.default_attendance_threshold
    members = await _members(db, scope)
    rows = await cohort_standings(db, members)
    students = [
        CohortStudent(
            **to_response(m).model_dump(),
            total_classes=row.tally.total,
            attended=row.tally.attended,
            percentage=row.percentage,
            at_risk=aggregation.is_below_threshold(row.percentage, threshold),
        )
        for m, row in zip(members, rows)
    ]
    return CohortStudentsResponse(scope=scope, threshold=threshold, students=students)


async def class_health(db: AsyncSession, advisor: ClassAdvisor) -> ClassHealthResponse:
    scope = scope_of(advisor)
    threshold = settings.default_attendance_threshold
    rows = await cohort_standings(db, await _members(db, scope))
    health = aggregation.cohort_health(rows, threshold)
    return ClassHealthResponse(
        scope=scope,
        threshold=threshold,
        total_students=health.total_students,
        students_with_data=health.students_with_data,
        average_percentage=health.average_percentage,
        defaulters_count=health.defaulters_count,
    )


async def at_risk(db: AsyncSession, advisor: ClassAdvisor, threshold: Optional[int] = None) -> DefaulterReport:
    scope = scope_of(advisor)
    return await get_defaulters(
        db,
        threshold=threshold,
        semester=scope.semester,
        department_id=scope.department_id,
        section=scope.section,
    )


async def _ensure_in_cohort(db: AsyncSession, advisor: ClassAdvisor, student_id: UUID) -> Student:
    scope = scope_of(advisor)
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    if (
        (scope.semester is not None and student.semester != scope.semester)
        or (scope.section and student.section != scope.section)
        or (scope.department_id is not None and student.department_id != scope.department_id)
    ):
        raise ServiceError("Student is not in your class", status.HTTP_403_FORBIDDEN)
    return student


async def list_notes(
    db: AsyncSession, advisor: ClassAdvisor, student_id: Optional[UUID] = None
) -> List[NoteResponse]:
    stmt = select(AdvisorNote).where(AdvisorNote.advisor_user_id == advisor.user_id)
    if student_id is not None:
        stmt = stmt.where(AdvisorNote.student_id == student_id)
    stmt = stmt.order_by(AdvisorNote.created_at.desc()).limit(NOTES_LIMIT)
    result = await db.execute(stmt)
    return [NoteResponse.model_validate(n) for n in result.scalars().all()]


async def add_note(db: AsyncSession, advisor: ClassAdvisor, payload: NoteCreate) -> NoteResponse:
    await _ensure_in_cohort(db, advisor, payload.student_id)
    obj = AdvisorNote(
        student_id=payload.student_id,
        advisor_user_id=advisor.user_id,
        note=payload.note.strip(),
        action_taken=payload.action_taken,
    )
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    logger.info("Advisor %s added a note for student %s", advisor.user_id, payload.student_id)
    return NoteResponse.model_validate(obj)


async def student_detail(db: AsyncSession, advisor: ClassAdvisor, student_id: UUID) -> StudentDetailResponse:
    await _ensure_in_cohort(db, advisor, student_id)
    attendance = await get_student_attendance(db, student_id)
    notes = await list_notes(db, advisor, student_id=student_id)
    return StudentDetailResponse(**attendance.model_dump(), notes=notes)


def _att_tot(tally: aggregation.Tally) -> str:
    return f"{tally.attended}/{tally.total}"


def _pct(value: Optional[int]) -> str:
    return "-" if value is None else f"{value}%"


async def build_report(
    db: AsyncSession,
    advisor: ClassAdvisor,
    report_type: AdvisorReportType = AdvisorReportType.FULL,
    batch: Optional[str] = None,
) -> Tuple[str, str]:
    """
    Cohort CSV with an attended/total and a percentage column per subject of the semester, then
    the totals. `batch` narrows a batch report; a defaulter report keeps only students below the
    threshold.
    """
    scope = scope_of(advisor)
    if report_type == AdvisorReportType.BATCH and not batch:
        raise ServiceError("batch is required for a batch report", status.HTTP_400_BAD_REQUEST)
    members = await _members(db, scope, batch=batch if report_type == AdvisorReportType.BATCH else None)
    if not members:
        raise ServiceError("No students found", status.HTTP_404_NOT_FOUND)

    subject_stmt = select(Subject)
    if scope.semester is not None:
        subject_stmt = subject_stmt.where(Subject.semester == scope.semester)
    if scope.department_id is not None:
        subject_stmt = subject_stmt.where(Subject.department_id == scope.department_id)
    subjects = (await db.execute(subject_stmt.order_by(Subject.code))).scalars().all()

    # Totals cover every subject the student attended, not only the semester's columns
    triples = await fetch_attendance_triples(db, student_ids=[m.student.id for m in members])
    cells = aggregation.by_student_subject(triples)
    totals = aggregation.by_student(triples)
    threshold = settings.default_attendance_threshold

    header = ["Roll No", "Name"]
    for s in subjects:
        header += [f"{s.code} (Att/Tot)", f"{s.code} %"]
    header += ["Total (Att/Tot)", "Total %"]

    rows = []
    for m in members:
        total = totals.get(m.student.id, aggregation.Tally())
        if report_type == AdvisorReportType.DEFAULTER and not aggregation.is_below_threshold(
            total.percentage, threshold
        ):
            continue
        row = [m.student.roll_number, m.full_name]
        for s in subjects:
            cell = cells.get((m.student.id, s.id), aggregation.Tally())
            row += [_att_tot(cell), _pct(cell.percentage)]
        row += [_att_tot(total), _pct(total.percentage)]
        rows.append(row)

    filename = f"report_{report_type.value}_{date.today().isoformat()}.csv"
    return build_csv(header, rows), filename
