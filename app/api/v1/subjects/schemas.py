from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubjectCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    department_id: Optional[UUID] = None
    semester: Optional[int] = Field(None, ge=1, le=8)
    credits: Optional[int] = Field(None, ge=0)


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    department_id: Optional[UUID] = None
    semester: Optional[int] = Field(None, ge=1, le=8)
    credits: Optional[int] = Field(None, ge=0)


class SubjectResponse(BaseModel):
    id: UUID
    code: str
    name: str
    department_id: Optional[UUID] = None
    semester: Optional[int] = None
    credits: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubjectImportResponse(BaseModel):
    success: bool = True
    imported: int
    errors: List[str] = []
