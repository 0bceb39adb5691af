"""Subjects offered by a department in a given semester (e.g. CS301 Operating Systems)."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from app.db.session import Base


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    department_id = Column(Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    semester = Column(Integer, nullable=True)  # 1..8
    credits = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
