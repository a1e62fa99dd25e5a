"""Role dashboard payloads."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import Field

from edutrack.models import AttendanceRecord, AttendanceStatus, StudyMaterial
from edutrack.schemas.classes import ClassResponse
from edutrack.schemas.common import CamelModel, ClassBrief, UserBrief
from edutrack.schemas.reports import AttendanceRollup, TeacherSessionStats


class MaterialItem(CamelModel):
    id: int
    title: str
    subject: str
    class_: Optional[ClassBrief] = Field(default=None, alias="class")
    teacher: UserBrief
    file_type: Optional[str] = None
    file_url: Optional[str] = None
    uploaded_at: dt.datetime

    @classmethod
    def from_material(cls, material: StudyMaterial) -> "MaterialItem":
        return cls(
            id=material.id,
            title=material.title,
            subject=material.subject,
            class_=ClassBrief.model_validate(material.classroom) if material.classroom else None,
            teacher=UserBrief.model_validate(material.teacher),
            file_type=material.file_type,
            file_url=material.file_url,
            uploaded_at=material.uploaded_at,
        )


class EnrolledClass(ClassBrief):
    teacher: UserBrief


class StudentDashboardResponse(CamelModel):
    total_classes: int
    monthly_attendance: AttendanceRollup
    recent_study_materials: List[MaterialItem]
    enrolled_classes: List[EnrolledClass]


class AttendanceHistoryItem(CamelModel):
    date: dt.datetime
    day: dt.date
    status: str


class ClassDetailResponse(CamelModel):
    class_: ClassResponse = Field(alias="class")
    attendance_history: List[AttendanceHistoryItem]
    recent_study_materials: List[MaterialItem]


class RecentSession(CamelModel):
    id: int
    class_: ClassBrief = Field(alias="class")
    date: dt.datetime
    students_present: int
    total_students: int

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "RecentSession":
        return cls(
            id=record.id,
            class_=ClassBrief.model_validate(record.classroom),
            date=record.date,
            students_present=sum(
                1 for e in record.entries if e.status == AttendanceStatus.PRESENT
            ),
            total_students=len(record.entries),
        )


class TeacherDashboardResponse(CamelModel):
    total_classes: int
    total_students: int
    this_month: TeacherSessionStats
    study_materials_count: int
    recent_attendance: List[RecentSession]
