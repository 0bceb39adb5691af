"""
One concrete class meeting. Created ad hoc or from a timetable slot; the slot link is not stored,
it is re-derived from subject + start time + weekday when needed.
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Time, Uuid

from app.db.session import Base


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id = Column(Uuid, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True, index=True)
    session_date = Column(Date, nullable=False, default=date.today)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    room = Column(String(50), nullable=True)
    section = Column(String(10), nullable=True)
    batch = Column(String(10), nullable=True)
    # scheduled | active | completed | cancelled
    status = Column(String(20), nullable=False, default="scheduled")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
