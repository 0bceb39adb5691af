"""Weekly timetable template. A slot is a recurring entry, not a concrete class meeting."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Time, Uuid

from app.db.session import Base


class TimetableSlot(Base):
    __tablename__ = "timetable_slots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Monday .. 6=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    room = Column(String(50), nullable=True)
    section = Column(String(10), nullable=True)
    semester = Column(Integer, nullable=True)
    batch = Column(String(10), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
