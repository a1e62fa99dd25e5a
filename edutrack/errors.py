"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``create_app`` registers handlers that render them as
``{"error": {"kind": ..., "message": ..., "details": ...}}``.
"""

from __future__ import annotations

import enum
from typing import Any, Dict, Iterable, Optional


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIAL = "invalid_credential"
    BLOCKED = "blocked"
    PENDING_APPROVAL = "pending_approval"
    INSUFFICIENT_ROLE = "insufficient_role"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    USER_NOT_FOUND = "user_not_found"
    NOT_FOUND_OR_FORBIDDEN = "not_found_or_forbidden"
    VALIDATION_ERROR = "validation_error"
    UNENROLLED_STUDENT = "unenrolled_student"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class AppError(Exception):
    """Base class for every failure surfaced to callers."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class Unauthenticated(AppError):
    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401
    default_message = "Access token required"


class InvalidCredential(AppError):
    kind = ErrorKind.INVALID_CREDENTIAL
    status_code = 403
    default_message = "Invalid token"


class Blocked(AppError):
    kind = ErrorKind.BLOCKED
    status_code = 403
    default_message = "Account blocked"


class PendingApproval(AppError):
    kind = ErrorKind.PENDING_APPROVAL
    status_code = 403
    default_message = "Account pending approval"


class InsufficientRole(AppError):
    kind = ErrorKind.INSUFFICIENT_ROLE
    status_code = 403
    default_message = "Insufficient permissions"


class Forbidden(AppError):
    kind = ErrorKind.FORBIDDEN
    status_code = 403
    default_message = "Not authorized"


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "Not found"


class UserNotFound(NotFound):
    kind = ErrorKind.USER_NOT_FOUND
    default_message = "User not found"


class NotFoundOrForbidden(AppError):
    """Missing and not-owned are reported identically."""

    kind = ErrorKind.NOT_FOUND_OR_FORBIDDEN
    status_code = 404
    default_message = "Record not found or not authorized"


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION_ERROR
    status_code = 400
    default_message = "Validation error"

    @classmethod
    def for_fields(cls, fields: Dict[str, str], message: Optional[str] = None) -> "ValidationError":
        return cls(message, details={"fields": fields})


class UnenrolledStudent(AppError):
    kind = ErrorKind.UNENROLLED_STUDENT
    status_code = 400
    default_message = "Some students are not enrolled in this class"

    def __init__(self, student_ids: Iterable[int], message: Optional[str] = None):
        self.student_ids = list(student_ids)
        super().__init__(message, details={"invalidStudents": self.student_ids})


class Conflict(AppError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    default_message = "Conflict"


class Internal(AppError):
    pass
