"""Role-dependent views shared by every signed-in user."""

from typing import Optional, Union

from fastapi import APIRouter, Depends, Query

from edutrack.api.v1.params import DateParams, date_params
from edutrack.dependencies import get_ledger, require_roles
from edutrack.models import UserRole
from edutrack.schemas.attendance import AttendanceRecordResponse, StudentAttendanceItem
from edutrack.schemas.reports import (
    AdminAttendanceSummary,
    StudentAttendanceSummary,
    TeacherAttendanceSummary,
)
from edutrack.services import aggregator
from edutrack.services.ledger import AttendanceFilter, AttendanceLedger
from edutrack.services.policy import ALL_ROLES
from edutrack.services.principal import Principal
from edutrack.services.scope import build_scope

router = APIRouter()

anyone = require_roles(*ALL_ROLES)


# the payload shape depends on the role, so the models serialize themselves
@router.get("/attendance-summary", response_model=None)
def attendance_summary(
    class_id: Optional[int] = Query(None, alias="classId"),
    dates: DateParams = Depends(date_params),
    principal: Principal = Depends(anyone),
    ledger: AttendanceLedger = Depends(get_ledger),
) -> Union[StudentAttendanceSummary, TeacherAttendanceSummary, AdminAttendanceSummary]:
    """Students see their own presence, teachers the sessions they took."""

    records = ledger.records_for(
        build_scope(principal),
        AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id),
    )
    if principal.role == UserRole.STUDENT:
        stats = aggregator.per_student_stats(records, principal.id)
        return StudentAttendanceSummary(
            total_classes=stats.total,
            present_classes=stats.present,
            absent_classes=stats.absent,
            attendance_percentage=stats.percentage,
            records=[StudentAttendanceItem.from_record(r, principal.id) for r in records],
        )
    if principal.role == UserRole.TEACHER:
        return TeacherAttendanceSummary(
            **aggregator.teacher_session_stats(records).model_dump(),
            records=[AttendanceRecordResponse.from_record(r) for r in records],
        )
    overall = aggregator.daily_overall(aggregator.daily_summary(records))
    return AdminAttendanceSummary(date_range=dates.as_range(), **overall.model_dump())
