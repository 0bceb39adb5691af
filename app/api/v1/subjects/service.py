import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.csv_io import parse_csv, parse_optional_int
from app.core.exceptions import CsvFormatError, ServiceError
from app.core.models import Department, Subject

from .schemas import SubjectCreate, SubjectImportResponse, SubjectResponse, SubjectUpdate

logger = logging.getLogger(__name__)

SUBJECT_IMPORT_REQUIRED = ("code", "name")


async def _ensure_department(db: AsyncSession, department_id: Optional[UUID]) -> None:
    if department_id is not None and not await db.get(Department, department_id):
        raise ServiceError("Invalid department", status.HTTP_400_BAD_REQUEST)


async def create_subject(db: AsyncSession, payload: SubjectCreate) -> SubjectResponse:
    await _ensure_department(db, payload.department_id)
    subject = Subject(
        code=payload.code.strip().upper(),
        name=payload.name.strip(),
        department_id=payload.department_id,
        semester=payload.semester,
        credits=payload.credits,
    )
    db.add(subject)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Subject code '{subject.code}' already exists", status.HTTP_409_CONFLICT)
    await db.refresh(subject)
    return SubjectResponse.model_validate(subject)


async def list_subjects(
    db: AsyncSession,
    department_id: Optional[UUID] = None,
    semester: Optional[int] = None,
) -> List[SubjectResponse]:
    stmt = select(Subject)
    if department_id is not None:
        stmt = stmt.where(Subject.department_id == department_id)
    if semester is not None:
        stmt = stmt.where(Subject.semester == semester)
    stmt = stmt.order_by(Subject.code)
    result = await db.execute(stmt)
    return [SubjectResponse.model_validate(s) for s in result.scalars().all()]


async def get_subject(db: AsyncSession, subject_id: UUID) -> Optional[SubjectResponse]:
    subject = await db.get(Subject, subject_id)
    return SubjectResponse.model_validate(subject) if subject else None


async def update_subject(
    db: AsyncSession, subject_id: UUID, payload: SubjectUpdate
) -> Optional[SubjectResponse]:
    subject = await db.get(Subject, subject_id)
    if not subject:
        return None
    data = payload.model_dump(exclude_unset=True)
    if "department_id" in data:
        await _ensure_department(db, data["department_id"])
    if data.get("name") is not None:
        data["name"] = data["name"].strip()
    for key, value in data.items():
        setattr(subject, key, value)
    await db.commit()
    await db.refresh(subject)
    return SubjectResponse.model_validate(subject)


async def delete_subject(db: AsyncSession, subject_id: UUID) -> bool:
    subject = await db.get(Subject, subject_id)
    if not subject:
        return False
    await db.delete(subject)
    await db.commit()
    return True


async def import_subjects_csv(db: AsyncSession, content: bytes) -> SubjectImportResponse:
    """
    Upsert subjects on code. An unknown department is reported but the subject is still imported
    without one; rows lacking code or name are skipped.
    """
    rows = parse_csv(content, SUBJECT_IMPORT_REQUIRED, settings.csv_import_max_rows)

    dept_result = await db.execute(select(Department.code, Department.id))
    dept_map: Dict[str, UUID] = {code.lower(): id_ for code, id_ in dept_result.all()}

    parsed: Dict[str, dict] = {}
    errors: List[str] = []
    for row_num, row in rows:
        code = row.get("code", "").upper()
        name = row.get("name", "")
        if not code or not name:
            errors.append(f"Row {row_num}: Missing code or name")
            continue
        try:
            semester = parse_optional_int(row.get("semester", ""), "semester")
            credits = parse_optional_int(row.get("credits", ""), "credits")
            if semester is not None and not 1 <= semester <= 8:
                raise ValueError(f"Invalid semester: {semester}")
            if credits is not None and credits < 0:
                raise ValueError(f"Invalid credits: {credits}")
        except ValueError as e:
            errors.append(f"Row {row_num}: {e}")
            continue

        department_id = None
        dept_code = row.get("department", "")
        if dept_code:
            department_id = dept_map.get(dept_code.lower())
            if department_id is None:
                errors.append(f'Row {row_num}: Unknown department "{dept_code}"')

        # Later rows win for a repeated code
        parsed[code] = {
            "name": name,
            "semester": semester,
            "credits": credits,
            "department_id": department_id,
        }

    if not parsed:
        raise CsvFormatError("No valid subjects to import", details=errors)

    existing_result = await db.execute(select(Subject).where(Subject.code.in_(list(parsed))))
    existing = {s.code: s for s in existing_result.scalars().all()}
    for code, values in parsed.items():
        subject = existing.get(code)
        if subject is None:
            db.add(Subject(code=code, **values))
        else:
            for key, value in values.items():
                setattr(subject, key, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Subject import conflicted with a concurrent change, please retry", status.HTTP_409_CONFLICT)

    logger.info("Subject import: %d upserted, %d row errors", len(parsed), len(errors))
    return SubjectImportResponse(imported=len(parsed), errors=errors)
