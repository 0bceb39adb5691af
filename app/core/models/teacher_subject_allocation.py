"""Teacher-subject allocation (year-specific). Defines which subject a teacher teaches to which section/batch."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from app.db.session import Base


class TeacherSubjectAllocation(Base):
    __tablename__ = "teacher_subject_allocations"
    __table_args__ = (
        # NULL batch is not covered by the constraint; the service checks it explicitly
        UniqueConstraint(
            "teacher_id", "subject_id", "section", "batch", "academic_year",
            name="uq_teacher_subject_allocation",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    section = Column(String(10), nullable=True)
    batch = Column(String(10), nullable=True)
    academic_year = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
