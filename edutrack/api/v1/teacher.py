"""Teacher views: own classes, dashboard and the marking sheet."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from edutrack.db import get_db
from edutrack.dependencies import get_ledger, require_roles
from edutrack.errors import ValidationError
from edutrack.models import StudyMaterial, UserRole
from edutrack.schemas.attendance import AttendanceRecordResponse, MarkingSheetResponse
from edutrack.schemas.classes import ClassResponse, TeacherClassCreate
from edutrack.schemas.common import ClassBrief, UserBrief
from edutrack.schemas.dashboard import RecentSession, TeacherDashboardResponse
from edutrack.services import aggregator, classes
from edutrack.services.ledger import AttendanceFilter, AttendanceLedger
from edutrack.services.principal import Principal
from edutrack.services.scope import build_scope
from edutrack.utils.dates import month_window

router = APIRouter()

teacher_only = require_roles(UserRole.TEACHER)


@router.get("/stats", response_model=TeacherDashboardResponse)
def stats(
    principal: Principal = Depends(teacher_only),
    ledger: AttendanceLedger = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    owned = classes.classes_for_teacher(db, principal.id)
    student_ids = {sid for c in owned for sid in c.student_ids}
    scope = build_scope(principal)
    month_start, month_end = month_window(ledger.local_today())
    this_month = ledger.records_for(scope, AttendanceFilter(start_date=month_start, end_date=month_end))
    recent = ledger.find(scope, page=1, limit=5)
    materials = db.scalar(
        select(func.count(StudyMaterial.id)).where(StudyMaterial.teacher_id == principal.id)
    )
    return TeacherDashboardResponse(
        total_classes=len(owned),
        total_students=len(student_ids),
        this_month=aggregator.teacher_session_stats(this_month),
        study_materials_count=materials or 0,
        recent_attendance=[RecentSession.from_record(r) for r in recent.items],
    )


@router.get("/classes", response_model=List[ClassResponse])
def my_classes(principal: Principal = Depends(teacher_only), db: Session = Depends(get_db)):
    return [ClassResponse.from_class(c) for c in classes.classes_for_teacher(db, principal.id)]


@router.post("/classes", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: TeacherClassCreate,
    principal: Principal = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    return ClassResponse.from_class(classes.create_teacher_class(db, principal.id, payload))


@router.get("/attendance/students", response_model=MarkingSheetResponse)
def marking_sheet(
    class_id: Optional[int] = Query(None, alias="classId"),
    date: Optional[str] = Query(None),
    principal: Principal = Depends(teacher_only),
    ledger: AttendanceLedger = Depends(get_ledger),
):
    """Enrolled students plus whatever was already stored for ``date``."""

    if class_id is None:
        raise ValidationError.for_fields({"classId": "required"}, "Class ID is required")
    when = date or ledger.local_today()
    try:
        classroom, existing = ledger.existing_for_day(class_id, principal.id, when)
    except ValueError as exc:
        raise ValidationError.for_fields({"date": f"Invalid date: {date}"}) from exc
    return MarkingSheetResponse(
        class_=ClassBrief.model_validate(classroom),
        students=[UserBrief.model_validate(s) for s in classroom.students],
        existing_attendance=AttendanceRecordResponse.from_record(existing) if existing else None,
    )
