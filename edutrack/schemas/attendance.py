"""Attendance ledger request/response schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import Field

from edutrack.models import AttendanceRecord, AttendanceStatus
from edutrack.schemas.common import CamelModel, ClassBrief, Pagination, UserBrief


class StudentMark(CamelModel):
    student: int
    status: AttendanceStatus


class GeoPoint(CamelModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class AttendanceCreate(CamelModel):
    class_id: int
    date: dt.datetime
    students: List[StudentMark]
    location: Optional[GeoPoint] = None


class AttendanceUpdate(CamelModel):
    students: List[StudentMark]
    location: Optional[GeoPoint] = None


class EntryResponse(CamelModel):
    student: UserBrief
    status: AttendanceStatus


class TeacherAttendanceResponse(CamelModel):
    status: AttendanceStatus
    location: Optional[GeoPoint] = None
    timestamp: dt.datetime


class AttendanceRecordResponse(CamelModel):
    id: int
    class_: ClassBrief = Field(alias="class")
    teacher: UserBrief
    date: dt.datetime
    day: dt.date
    students: List[EntryResponse]
    teacher_attendance: TeacherAttendanceResponse
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "AttendanceRecordResponse":
        location = None
        if record.has_location:
            location = GeoPoint(
                latitude=record.teacher_latitude, longitude=record.teacher_longitude
            )
        return cls(
            id=record.id,
            class_=ClassBrief.model_validate(record.classroom),
            teacher=UserBrief.model_validate(record.teacher),
            date=record.date,
            day=record.day,
            students=[
                EntryResponse(student=UserBrief.model_validate(e.student), status=e.status)
                for e in record.entries
            ],
            teacher_attendance=TeacherAttendanceResponse(
                status=record.teacher_status,
                location=location,
                timestamp=record.teacher_marked_at,
            ),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class AttendanceWriteResponse(CamelModel):
    attendance: AttendanceRecordResponse
    message: str


class AttendanceListResponse(CamelModel):
    attendance: List[AttendanceRecordResponse]
    pagination: Pagination


class StudentAttendanceItem(CamelModel):
    """One session seen from a single student's point of view."""

    id: int
    class_: ClassBrief = Field(alias="class")
    teacher: UserBrief
    date: dt.datetime
    day: dt.date
    status: str
    created_at: dt.datetime

    @classmethod
    def from_record(cls, record: AttendanceRecord, student_id: int) -> "StudentAttendanceItem":
        status = record.status_of(student_id)
        return cls(
            id=record.id,
            class_=ClassBrief.model_validate(record.classroom),
            teacher=UserBrief.model_validate(record.teacher),
            date=record.date,
            day=record.day,
            status=status.value if status else "not_marked",
            created_at=record.created_at,
        )


class StudentAttendanceListResponse(CamelModel):
    attendance: List[StudentAttendanceItem]
    pagination: Pagination


class MarkingSheetResponse(CamelModel):
    """Enrolled students plus the record already stored for the day, if any."""

    class_: ClassBrief = Field(alias="class")
    students: List[UserBrief]
    existing_attendance: Optional[AttendanceRecordResponse] = None
