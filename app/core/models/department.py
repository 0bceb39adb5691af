import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid

from app.db.session import Base


class Department(Base):
    """Academic department master data. Hard delete; referencing rows fall back to NULL."""

    __tablename__ = "departments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(20), nullable=False, unique=True)  # Uppercased; not editable after creation
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
