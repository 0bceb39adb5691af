from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class TeacherResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    email: str
    employee_id: Optional[str] = None
    department_id: Optional[UUID] = None
