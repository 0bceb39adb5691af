import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from pydantic import ValidationError
from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.reports import aggregation
from app.api.v1.reports.schemas import AttendanceSummary
from app.api.v1.reports.service import CohortMember, fetch_attendance_triples, fetch_cohort
from app.api.v1.users.schemas import UserCreate
from app.api.v1.users.service import provision_user
from app.core.config import settings
from app.core.csv_io import parse_csv, parse_optional_int
from app.core.enums import SessionStatus, UserRole
from app.core.exceptions import ServiceError
from app.core.models import AttendanceRecord, AttendanceSession, Department, Student, Subject

from .schemas import (
    PromoteRequest,
    PromoteResponse,
    SessionHistoryEntry,
    StudentAttendanceResponse,
    StudentCreate,
    StudentImportResponse,
    StudentResponse,
    SubjectAttendance,
    SubjectHistoryResponse,
)

logger = logging.getLogger(__name__)

STUDENT_IMPORT_REQUIRED = ("email", "full_name", "roll_number")


def to_response(m: CohortMember) -> StudentResponse:
    s = m.student
    return StudentResponse(
        id=s.id,
        user_id=s.user_id,
        roll_number=s.roll_number,
        full_name=m.full_name,
        email=m.email,
        semester=s.semester,
        section=s.section,
        batch=s.batch,
        department_id=s.department_id,
        department_code=m.department_code,
    )


async def list_students(
    db: AsyncSession,
    *,
    department_id: Optional[UUID] = None,
    semester: Optional[int] = None,
    section: Optional[str] = None,
    batch: Optional[str] = None,
) -> List[StudentResponse]:
    members = await fetch_cohort(
        db, semester=semester, department_id=department_id, section=section, batch=batch
    )
    return [to_response(m) for m in members]


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentResponse]:
    members = await fetch_cohort(db, student_ids=[student_id])
    return to_response(members[0]) if members else None


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    user = await provision_user(
        db,
        UserCreate(
            email=payload.email,
            password=payload.password or payload.roll_number,
            full_name=payload.full_name,
            role=UserRole.STUDENT,
            roll_number=payload.roll_number,
            semester=payload.semester,
            section=payload.section,
            batch=payload.batch,
            department_id=payload.department_id,
        ),
    )
    result = await db.execute(select(Student.id).where(Student.user_id == user.id))
    return await get_student(db, result.scalar_one())


async def import_students_csv(db: AsyncSession, content: bytes) -> StudentImportResponse:
    """
    Create one student account per row. Rows commit independently, so a failing row never
    undoes earlier ones; its reason is reported as "Row N: ...".
    """
    rows = parse_csv(content, STUDENT_IMPORT_REQUIRED, settings.csv_import_max_rows)

    dept_result = await db.execute(select(Department.code, Department.id))
    dept_map: Dict[str, UUID] = {code.lower(): id_ for code, id_ in dept_result.all()}

    created = 0
    errors: List[str] = []
    for row_num, row in rows:
        if not row.get("email") or not row.get("full_name") or not row.get("roll_number"):
            errors.append(f"Row {row_num}: Missing required fields")
            continue

        dept_code = row.get("department", "")
        try:
            semester = parse_optional_int(row.get("semester", ""), "semester")
            payload = UserCreate(
                email=row["email"],
                # Default password is the roll number
                password=row.get("password") or row["roll_number"],
                full_name=row["full_name"],
                role=UserRole.STUDENT,
                roll_number=row["roll_number"],
                semester=1 if semester is None else semester,
                section=row.get("section") or None,
                batch=row.get("batch") or None,
                department_id=dept_map.get(dept_code.lower()) if dept_code else None,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            errors.append(f"Row {row_num}: Invalid {field}: {first['msg']}")
            continue
        except ValueError as e:
            errors.append(f"Row {row_num}: {e}")
            continue

        try:
            await provision_user(db, payload)
        except ServiceError as e:
            errors.append(f"Row {row_num}: {e.message}")
            continue
        created += 1

    logger.info("Student import: %d created, %d row errors", created, len(errors))
    return StudentImportResponse(created=created, errors=errors)


async def promote_students(db: AsyncSession, payload: PromoteRequest) -> PromoteResponse:
    if payload.from_semester == payload.to_semester:
        raise ServiceError("from_semester and to_semester must differ", status.HTTP_400_BAD_REQUEST)
    retain = set(payload.retain_ids)
    result = await db.execute(select(Student.id).where(Student.semester == payload.from_semester))
    promote_ids = [sid for sid in result.scalars().all() if sid not in retain]
    if promote_ids:
        await db.execute(
            update(Student).where(Student.id.in_(promote_ids)).values(semester=payload.to_semester)
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ServiceError("Promotion failed, please retry", status.HTTP_409_CONFLICT)
    logger.info(
        "Promoted %d students from semester %d to %d (%d retained)",
        len(promote_ids), payload.from_semester, payload.to_semester, len(retain),
    )
    return PromoteResponse(promoted=len(promote_ids), retained=len(retain))


async def get_student_attendance(db: AsyncSession, student_id: UUID) -> StudentAttendanceResponse:
    student = await get_student(db, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)

    triples = await fetch_attendance_triples(db, student_ids=[student_id])
    per_subject = aggregation.by_subject(triples)
    overall = aggregation.tally_statuses(status for _, _, status in triples)

    subjects: List[SubjectAttendance] = []
    if per_subject:
        result = await db.execute(
            select(Subject).where(Subject.id.in_(list(per_subject))).order_by(Subject.code)
        )
        for subject in result.scalars().all():
            summary = AttendanceSummary.from_tally(per_subject[subject.id])
            subjects.append(
                SubjectAttendance(
                    subject_id=subject.id,
                    subject_code=subject.code,
                    subject_name=subject.name,
                    semester=subject.semester,
                    **summary.model_dump(),
                )
            )
    return StudentAttendanceResponse(
        student=student,
        overall=AttendanceSummary.from_tally(overall),
        subjects=subjects,
    )


async def get_subject_history(db: AsyncSession, student_id: UUID, subject_id: UUID) -> SubjectHistoryResponse:
    """
    Session-by-session history of one subject, newest first. Covers the sessions the student was
    marked in plus unmarked ones held for their section and batch; cancelled sessions are left out.
    """
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    subject = await db.get(Subject, subject_id)
    if not subject:
        raise ServiceError("Subject not found", status.HTTP_404_NOT_FOUND)

    for_class = [
        or_(AttendanceSession.section.is_(None), AttendanceSession.section == student.section),
        or_(AttendanceSession.batch.is_(None), AttendanceSession.batch == student.batch),
    ]
    stmt = (
        select(AttendanceSession, AttendanceRecord.status, AttendanceRecord.marked_at)
        .outerjoin(
            AttendanceRecord,
            and_(
                AttendanceRecord.session_id == AttendanceSession.id,
                AttendanceRecord.student_id == student.id,
            ),
        )
        .where(
            AttendanceSession.subject_id == subject.id,
            AttendanceSession.status != SessionStatus.CANCELLED.value,
            or_(AttendanceRecord.id.is_not(None), and_(*for_class)),
        )
        .order_by(AttendanceSession.session_date.desc(), AttendanceSession.start_time.desc())
    )
    result = await db.execute(stmt)

    sessions: List[SessionHistoryEntry] = []
    for s, record_status, marked_at in result.all():
        sessions.append(
            SessionHistoryEntry(
                session_id=s.id,
                session_date=s.session_date,
                start_time=s.start_time,
                status=record_status,
                marked_at=marked_at,
            )
        )
    tally = aggregation.tally_statuses(e.status.value for e in sessions if e.status is not None)
    return SubjectHistoryResponse(
        student_id=student.id,
        subject_id=subject.id,
        subject_code=subject.code,
        subject_name=subject.name,
        summary=AttendanceSummary.from_tally(tally),
        sessions=sessions,
    )
