"""Admin endpoints: approvals, accounts, classes and reports."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from edutrack.api.v1.params import DateParams, date_params
from edutrack.db import get_db
from edutrack.dependencies import get_ledger, get_notifier, require_roles
from edutrack.errors import ValidationError
from edutrack.models import RequestStatus, UserRequest, UserRole
from edutrack.schemas.admin import (
    ApproveUserRequest,
    DashboardStats,
    RejectUserRequest,
    RequestDecisionResponse,
    RequestListResponse,
    UserRequestResponse,
)
from edutrack.schemas.attendance import AttendanceRecordResponse
from edutrack.schemas.auth import UserResponse
from edutrack.schemas.classes import AssignTeacher, ClassCreate, ClassResponse, ClassUpdate
from edutrack.schemas.common import UserBrief
from edutrack.schemas.reports import AdminReportResponse
from edutrack.services import aggregator, approvals, classes
from edutrack.services.ledger import AttendanceFilter, AttendanceLedger
from edutrack.services.notifications import Notifier
from edutrack.services.principal import Principal
from edutrack.services.scope import build_scope

router = APIRouter()

admin_only = require_roles(UserRole.ADMIN)


def _request_response(request: UserRequest) -> UserRequestResponse:
    return UserRequestResponse(
        id=request.id,
        user=UserBrief.model_validate(request.user),
        requested_role=request.requested_role,
        status=request.status,
        requested_at=request.requested_at,
        processed_at=request.processed_at,
        processed_by=UserBrief.model_validate(request.processed_by) if request.processed_by else None,
        admin_notes=request.admin_notes,
        profile_snapshot=request.profile_snapshot or {},
    )


@router.get("/dashboard-stats", response_model=DashboardStats)
def dashboard_stats(_: Principal = Depends(admin_only), db: Session = Depends(get_db)):
    return approvals.dashboard_stats(db)


@router.get("/requests", response_model=RequestListResponse)
def list_requests(
    status_filter: Optional[str] = Query("all", alias="status"),
    _: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
):
    wanted = None
    if status_filter not in (None, "all"):
        try:
            wanted = RequestStatus(status_filter)
        except ValueError as exc:
            raise ValidationError.for_fields({"status": f"Unknown status: {status_filter}"}) from exc
    return RequestListResponse(
        requests=[_request_response(r) for r in approvals.list_requests(db, wanted)],
        stats=approvals.request_stats(db),
    )


@router.post("/approve-user", response_model=RequestDecisionResponse)
def approve_user(
    payload: ApproveUserRequest,
    admin: Principal = Depends(admin_only),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
):
    request = approvals.approve(
        db, payload.request_id, payload.role, admin, notifier, payload.admin_notes
    )
    return RequestDecisionResponse(
        user=UserResponse.model_validate(request.user),
        user_request=_request_response(request),
        message="User approved successfully",
    )


@router.post("/reject-user", response_model=RequestDecisionResponse)
def reject_user(
    payload: RejectUserRequest,
    admin: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
):
    request = approvals.reject(db, payload.request_id, admin, payload.admin_notes)
    return RequestDecisionResponse(
        user=UserResponse.model_validate(request.user),
        user_request=_request_response(request),
        message="User request rejected",
    )


@router.post("/users/{user_id}/block", response_model=UserResponse)
def block_user(user_id: int, admin: Principal = Depends(admin_only), db: Session = Depends(get_db)):
    return UserResponse.model_validate(approvals.block_user(db, user_id, admin))


@router.post("/users/{user_id}/unblock", response_model=UserResponse)
def unblock_user(user_id: int, _: Principal = Depends(admin_only), db: Session = Depends(get_db)):
    return UserResponse.model_validate(approvals.unblock_user(db, user_id))


@router.get("/users", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = Query(None),
    _: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
):
    return [UserResponse.model_validate(u) for u in approvals.list_users(db, role)]


@router.get("/classes", response_model=List[ClassResponse])
def list_classes(_: Principal = Depends(admin_only), db: Session = Depends(get_db)):
    return [ClassResponse.from_class(c) for c in classes.list_classes(db)]


@router.post("/classes", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(payload: ClassCreate, _: Principal = Depends(admin_only), db: Session = Depends(get_db)):
    return ClassResponse.from_class(classes.create_class(db, payload))


@router.put("/classes/{class_id}", response_model=ClassResponse)
def update_class(
    class_id: int,
    payload: ClassUpdate,
    _: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
):
    return ClassResponse.from_class(classes.update_class(db, class_id, payload))


@router.delete("/classes/{class_id}")
def delete_class(class_id: int, _: Principal = Depends(admin_only), db: Session = Depends(get_db)):
    classes.delete_class(db, class_id)
    return {"message": "Class deleted successfully"}


@router.post("/classes/{class_id}/assign-teacher", response_model=ClassResponse)
def assign_teacher(
    class_id: int,
    payload: AssignTeacher,
    _: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
):
    return ClassResponse.from_class(classes.assign_teacher(db, class_id, payload.teacher_id))


@router.get("/attendance-reports", response_model=AdminReportResponse)
def attendance_reports(
    class_id: Optional[int] = Query(None, alias="classId"),
    student_id: Optional[int] = Query(None, alias="studentId"),
    dates: DateParams = Depends(date_params),
    admin: Principal = Depends(admin_only),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    scope = build_scope(admin, requested_student_id=student_id)
    records = ledger.records_for(
        scope, AttendanceFilter(start_date=dates.start, end_date=dates.end, class_id=class_id)
    )
    days = aggregator.daily_summary(records)
    return AdminReportResponse(
        date_range=dates.as_range(),
        attendance=[AttendanceRecordResponse.from_record(r) for r in records],
        daily_summary=days,
        overall_stats=aggregator.daily_overall(days),
    )
