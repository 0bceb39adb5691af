from typing import List, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SchedulingConflictError(ServiceError):
    """Timetable slot collides with existing slots. One message per conflict class."""

    def __init__(self, conflicts: List[str], message: str = "Scheduling Conflict") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
        self.conflicts = list(conflicts)

    @property
    def detail(self) -> dict:
        return {"message": self.message, "conflicts": self.conflicts}


class CsvFormatError(ServiceError):
    """Uploaded CSV is unreadable or lacks required columns."""

    def __init__(self, message: str, details: Optional[List[str]] = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.details = details or []

    @property
    def detail(self):
        if not self.details:
            return self.message
        return {"message": self.message, "errors": self.details}
