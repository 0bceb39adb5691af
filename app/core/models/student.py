"""
Student profile. 1:1 shadow of a User with role student.
section is the coarse division (A-D); batch is the practical sub-group (B1-B4), NULL = whole section.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from app.db.session import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    roll_number = Column(String(50), nullable=False, unique=True, index=True)
    semester = Column(Integer, nullable=False, default=1)
    section = Column(String(10), nullable=True)
    batch = Column(String(10), nullable=True)
    department_id = Column(Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
