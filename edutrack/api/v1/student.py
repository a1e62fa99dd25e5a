"""Student self-service views."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edutrack.api.v1.params import DateParams, PageParams, date_params, page_params
from edutrack.db import get_db
from edutrack.dependencies import get_ledger, require_roles
from edutrack.models import UserRole
from edutrack.schemas.attendance import StudentAttendanceItem, StudentAttendanceListResponse
from edutrack.schemas.classes import ClassResponse
from edutrack.schemas.common import Pagination, UserBrief
from edutrack.schemas.dashboard import (
    AttendanceHistoryItem,
    ClassDetailResponse,
    EnrolledClass,
    MaterialItem,
    StudentDashboardResponse,
)
from edutrack.schemas.reports import StudentClassSummary
from edutrack.services import aggregator, classes
from edutrack.services.ledger import AttendanceFilter, AttendanceLedger
from edutrack.services.principal import Principal
from edutrack.services.scope import build_scope
from edutrack.utils.dates import month_window

router = APIRouter()

student_only = require_roles(UserRole.STUDENT)


@router.get("/dashboard", response_model=StudentDashboardResponse)
def dashboard(
    principal: Principal = Depends(student_only),
    ledger: AttendanceLedger = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    enrolled = classes.classes_for_student(db, principal.id)
    month_start, month_end = month_window(ledger.local_today())
    records = ledger.records_for(
        build_scope(principal), AttendanceFilter(start_date=month_start, end_date=month_end)
    )
    materials = classes.materials_for(db, (c.id for c in enrolled), limit=5)
    return StudentDashboardResponse(
        total_classes=len(enrolled),
        monthly_attendance=aggregator.monthly_rollup(records, principal.id, month_start, month_end),
        recent_study_materials=[MaterialItem.from_material(m) for m in materials],
        enrolled_classes=[
            EnrolledClass(
                id=c.id, name=c.name, subject=c.subject, teacher=UserBrief.model_validate(c.teacher)
            )
            for c in enrolled
        ],
    )


@router.get("/attendance", response_model=StudentAttendanceListResponse)
def my_attendance(
    class_id: Optional[int] = Query(None, alias="classId"),
    dates: DateParams = Depends(date_params),
    paging: PageParams = Depends(page_params),
    principal: Principal = Depends(student_only),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    page = ledger.find(
        build_scope(principal),
        AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id),
        paging.page,
        paging.limit,
    )
    return StudentAttendanceListResponse(
        attendance=[StudentAttendanceItem.from_record(r, principal.id) for r in page.items],
        pagination=Pagination.build(paging.page, paging.limit, page.total),
    )


@router.get("/attendance-summary", response_model=StudentClassSummary)
def attendance_summary(
    dates: DateParams = Depends(date_params),
    principal: Principal = Depends(student_only),
    ledger: AttendanceLedger = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    enrolled = classes.classes_for_student(db, principal.id)
    records = ledger.records_for(
        build_scope(principal), AttendanceFilter(start_date=dates.start, end_date=dates.end)
    )
    return aggregator.student_class_summary(enrolled, records, principal.id)


@router.get("/classes/{class_id}", response_model=ClassDetailResponse)
def class_detail(
    class_id: int,
    principal: Principal = Depends(student_only),
    ledger: AttendanceLedger = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    classroom = classes.enrolled_class(db, class_id, principal.id)
    recent = ledger.find(build_scope(principal), AttendanceFilter(class_id=class_id), 1, 10)
    return ClassDetailResponse(
        class_=ClassResponse.from_class(classroom),
        attendance_history=[
            AttendanceHistoryItem(
                date=r.date, day=r.day, status=StudentAttendanceItem.from_record(r, principal.id).status
            )
            for r in recent.items
        ],
        recent_study_materials=[
            MaterialItem.from_material(m) for m in classes.materials_for(db, [class_id], limit=5)
        ],
    )
