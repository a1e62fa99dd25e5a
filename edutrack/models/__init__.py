"""SQLAlchemy models."""

from edutrack.models.enums import REQUESTABLE_ROLES, AttendanceStatus, RequestStatus, UserRole
from edutrack.models.user import User, UserRequest
from edutrack.models.classroom import Classroom, StudyMaterial, class_students
from edutrack.models.attendance import AttendanceEntry, AttendanceRecord

__all__ = [
    "AttendanceEntry",
    "AttendanceRecord",
    "AttendanceStatus",
    "Classroom",
    "REQUESTABLE_ROLES",
    "RequestStatus",
    "StudyMaterial",
    "User",
    "UserRequest",
    "UserRole",
    "class_students",
]
