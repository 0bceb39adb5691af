from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    ADVISOR = "advisor"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RosterTier(str, Enum):
    STRICT = "strict"
    RELAXED = "relaxed"
    WIDE = "wide"


class AdvisorReportType(str, Enum):
    FULL = "full"
    BATCH = "batch"
    DEFAULTER = "defaulter"


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"
