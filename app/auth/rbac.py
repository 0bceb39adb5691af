from typing import Iterable

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole

ADMIN_ONLY = (UserRole.ADMIN.value,)
SCHEDULERS = (UserRole.ADMIN.value, UserRole.ADVISOR.value)
STAFF = (UserRole.ADMIN.value, UserRole.TEACHER.value, UserRole.ADVISOR.value)
TEACHING = (UserRole.TEACHER.value, UserRole.ADVISOR.value)
ADVISOR_ONLY = (UserRole.ADVISOR.value,)
STUDENT_ONLY = (UserRole.STUDENT.value,)


def require_roles(roles: Iterable[str]):
    """
    Dependency factory: the single authorization gate. Each endpoint declares the role set it
    accepts; anything else is rejected before the handler runs.

    Example:
        Depends(require_roles(STAFF))
    """
    allowed = frozenset(roles)

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker
