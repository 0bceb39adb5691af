"""Class advisor mapping. At most one per user; grants advisor scope over a (semester, section, department) cohort."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from app.db.session import Base


class ClassAdvisor(Base):
    __tablename__ = "class_advisors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    department_id = Column(Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    section = Column(String(10), nullable=True)
    semester = Column(Integer, nullable=True)
    academic_year = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
