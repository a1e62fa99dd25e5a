"""Role-derived visibility filter for attendance queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import ColumnElement

from edutrack.errors import Forbidden
from edutrack.models import AttendanceEntry, AttendanceRecord, UserRole
from edutrack.services.principal import Principal


@dataclass(frozen=True)
class ReportScope:
    """Which attendance records a caller may see.

    ``teacher_id`` restricts to records taken by that teacher and
    ``student_id`` to records that contain that student. Both ``None`` means
    unrestricted (admins).
    """

    role: UserRole
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None

    @property
    def unrestricted(self) -> bool:
        return self.teacher_id is None and self.student_id is None

    def conditions(self) -> List[ColumnElement[bool]]:
        criteria: List[ColumnElement[bool]] = []
        if self.teacher_id is not None:
            criteria.append(AttendanceRecord.teacher_id == self.teacher_id)
        if self.student_id is not None:
            criteria.append(contains_student(self.student_id))
        return criteria


def contains_student(student_id: int) -> ColumnElement[bool]:
    return AttendanceRecord.entries.any(AttendanceEntry.student_id == student_id)


def build_scope(
    principal: Principal,
    *,
    requested_teacher_id: Optional[int] = None,
    requested_student_id: Optional[int] = None,
) -> ReportScope:
    """Derive the scope for ``principal``.

    Teachers are pinned to their own records whatever teacher they ask for.
    Students are pinned to themselves; asking for anyone else is forbidden
    before any lookup happens.
    """

    if principal.role == UserRole.ADMIN:
        return ReportScope(
            role=principal.role,
            teacher_id=requested_teacher_id,
            student_id=requested_student_id,
        )
    if principal.role == UserRole.TEACHER:
        return ReportScope(
            role=principal.role,
            teacher_id=principal.id,
            student_id=requested_student_id,
        )
    if requested_student_id is not None and requested_student_id != principal.id:
        raise Forbidden("Not authorized to view this student's attendance")
    return ReportScope(role=principal.role, student_id=principal.id)
