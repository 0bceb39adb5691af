from app.core.models.department import Department
from app.core.models.subject import Subject
from app.core.models.teacher import Teacher
from app.core.models.student import Student
from app.core.models.class_advisor import ClassAdvisor
from app.core.models.teacher_subject_allocation import TeacherSubjectAllocation
from app.core.models.timetable import TimetableSlot
from app.core.models.attendance_session import AttendanceSession
from app.core.models.attendance_record import AttendanceRecord
from app.core.models.advisor_note import AdvisorNote

__all__ = [
    "AdvisorNote",
    "AttendanceRecord",
    "AttendanceSession",
    "ClassAdvisor",
    "Department",
    "Student",
    "Subject",
    "Teacher",
    "TeacherSubjectAllocation",
    "TimetableSlot",
]
