"""Enumerations shared by models, schemas and services."""

import enum


class UserRole(str, enum.Enum):
    """Account roles."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class RequestStatus(str, enum.Enum):
    """Approval workflow states of a ``UserRequest``.

    ``pending`` is the only non-terminal state of a single request; a rejected
    user re-applies through a fresh request.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"


# Roles that can be requested through the approval workflow
REQUESTABLE_ROLES = frozenset({UserRole.STUDENT, UserRole.TEACHER})
