"""Attendance ledger endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from edutrack.api.v1.params import DateParams, PageParams, date_params, page_params
from edutrack.db import get_db
from edutrack.dependencies import get_ledger, require_roles
from edutrack.errors import NotFoundOrForbidden, ValidationError
from edutrack.models import Classroom, UserRole
from edutrack.schemas.attendance import (
    AttendanceCreate,
    AttendanceListResponse,
    AttendanceRecordResponse,
    AttendanceUpdate,
    AttendanceWriteResponse,
    StudentAttendanceItem,
    StudentAttendanceListResponse,
)
from edutrack.schemas.common import ClassBrief, Pagination, UserBrief
from edutrack.schemas.reports import ClassStatsResponse, DateRangeSummaryResponse
from edutrack.services import aggregator
from edutrack.services.classes import get_class
from edutrack.services.ledger import AttendanceFilter, AttendanceLedger
from edutrack.services.policy import ALL_ROLES, STAFF_ROLES
from edutrack.services.principal import Principal
from edutrack.services.scope import ReportScope, build_scope

router = APIRouter()

staff = require_roles(*STAFF_ROLES)
teacher_only = require_roles(UserRole.TEACHER)
anyone = require_roles(*ALL_ROLES)

RECENT_RECORDS = 10


@router.get("", response_model=AttendanceListResponse)
def list_attendance(
    class_id: Optional[int] = Query(None, alias="classId"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    student_id: Optional[int] = Query(None, alias="studentId"),
    dates: DateParams = Depends(date_params),
    paging: PageParams = Depends(page_params),
    principal: Principal = Depends(staff),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    scope = build_scope(
        principal, requested_teacher_id=teacher_id, requested_student_id=student_id
    )
    filters = AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id)
    page = ledger.find(scope, filters, paging.page, paging.limit)
    return AttendanceListResponse(
        attendance=[AttendanceRecordResponse.from_record(r) for r in page.items],
        pagination=Pagination.build(paging.page, paging.limit, page.total),
    )


@router.post("", response_model=AttendanceWriteResponse)
def record_attendance(
    payload: AttendanceCreate,
    principal: Principal = Depends(teacher_only),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    record = ledger.upsert_day(
        payload.class_id, principal.id, payload.date, payload.students, payload.location
    )
    return AttendanceWriteResponse(
        attendance=AttendanceRecordResponse.from_record(record),
        message="Attendance recorded successfully",
    )


@router.get("/summary/date-range", response_model=DateRangeSummaryResponse)
def date_range_summary(
    class_id: Optional[int] = Query(None, alias="classId"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    dates: DateParams = Depends(date_params),
    principal: Principal = Depends(staff),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    if dates.start is None or dates.end is None:
        raise ValidationError.for_fields(
            {"startDate": "required", "endDate": "required"},
            "Start date and end date are required",
        )
    scope = build_scope(principal, requested_teacher_id=teacher_id)
    records = ledger.records_for(
        scope, AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id)
    )
    days = aggregator.daily_summary(records)
    return DateRangeSummaryResponse(
        date_range=dates.as_range(),
        daily_summary=days,
        overall_stats=aggregator.daily_overall(days),
    )


@router.get("/class/{class_id}/stats", response_model=ClassStatsResponse)
def class_stats(
    class_id: int,
    dates: DateParams = Depends(date_params),
    principal: Principal = Depends(staff),
    ledger: AttendanceLedger = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    if principal.role == UserRole.TEACHER:
        owned = db.scalar(
            select(Classroom.id).where(Classroom.id == class_id, Classroom.teacher_id == principal.id)
        )
        if owned is None:
            raise NotFoundOrForbidden("Class not found or not authorized")
    classroom = get_class(db, class_id)

    # ownership was checked above; sessions taken by earlier owners still count
    records = ledger.records_for(
        ReportScope(role=principal.role),
        AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id),
    )
    stats = aggregator.per_class_stats(records, classroom.students)
    return ClassStatsResponse(
        class_=ClassBrief.model_validate(classroom),
        teacher=UserBrief.model_validate(classroom.teacher),
        student_stats=stats.student_stats,
        overall_stats=stats.overall_stats,
        attendance_records=[
            AttendanceRecordResponse.from_record(r) for r in records[:RECENT_RECORDS]
        ],
    )


@router.get("/student/{student_id}", response_model=StudentAttendanceListResponse)
def student_history(
    student_id: int,
    class_id: Optional[int] = Query(None, alias="classId"),
    dates: DateParams = Depends(date_params),
    paging: PageParams = Depends(page_params),
    principal: Principal = Depends(anyone),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    # a student asking for someone else is refused before any lookup
    scope = build_scope(principal, requested_student_id=student_id)
    page = ledger.find(
        scope,
        AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id),
        paging.page,
        paging.limit,
    )
    return StudentAttendanceListResponse(
        attendance=[StudentAttendanceItem.from_record(r, student_id) for r in page.items],
        pagination=Pagination.build(paging.page, paging.limit, page.total),
    )


@router.get("/{record_id}", response_model=AttendanceRecordResponse)
def get_attendance(
    record_id: int,
    principal: Principal = Depends(staff),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    return AttendanceRecordResponse.from_record(ledger.get(record_id, build_scope(principal)))


@router.put("/{record_id}", response_model=AttendanceWriteResponse)
def update_attendance(
    record_id: int,
    payload: AttendanceUpdate,
    principal: Principal = Depends(teacher_only),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    record = ledger.update_record(record_id, principal.id, payload.students, payload.location)
    return AttendanceWriteResponse(
        attendance=AttendanceRecordResponse.from_record(record),
        message="Attendance updated successfully",
    )


@router.delete("/{record_id}")
def delete_attendance(
    record_id: int,
    principal: Principal = Depends(teacher_only),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    ledger.delete(record_id, principal.id)
    return {"message": "Attendance record deleted successfully"}
