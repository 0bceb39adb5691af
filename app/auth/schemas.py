from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    id: UUID
    email: EmailStr
    full_name: str
    role: UserRole


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserInfo


class ProfileResponse(BaseModel):
    """Current principal plus the role-specific profile rows it resolves to."""

    user: UserInfo
    teacher_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    advisor_id: Optional[UUID] = None


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for role checks."""

    id: UUID
    email: str
    full_name: str
    role: str = Field(..., description="admin, teacher, advisor, student")
