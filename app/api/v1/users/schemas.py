from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import UserRole


class UserCreate(BaseModel):
    """Provision a principal. Teacher and student roles also get their profile row."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: UserRole
    department_id: Optional[UUID] = None
    # teacher profile
    employee_id: Optional[str] = Field(None, max_length=50)
    # student profile
    roll_number: Optional[str] = Field(None, max_length=50)
    semester: int = Field(1, ge=1, le=8)
    section: Optional[str] = Field(None, max_length=10)
    batch: Optional[str] = Field(None, max_length=10)


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
