"""Aggregated attendance report schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import Field

from edutrack.schemas.attendance import AttendanceRecordResponse, StudentAttendanceItem
from edutrack.schemas.common import CamelModel, ClassBrief, DateRange, UserBrief


class StudentStats(CamelModel):
    total: int = 0
    present: int = 0
    absent: int = 0
    percentage: int = 0


class ClassStudentStats(StudentStats):
    student: UserBrief


class ClassOverallStats(CamelModel):
    total_sessions: int
    total_students: int
    average_attendance: int


class ClassStats(CamelModel):
    student_stats: List[ClassStudentStats]
    overall_stats: ClassOverallStats


class ClassStatsResponse(ClassStats):
    class_: ClassBrief = Field(alias="class")
    teacher: UserBrief
    attendance_records: List[AttendanceRecordResponse]


class DailyClassEntry(CamelModel):
    class_: ClassBrief = Field(alias="class")
    teacher: UserBrief
    present_count: int
    total_count: int
    attendance_percentage: int


class DailySummary(CamelModel):
    date: dt.date
    classes: List[DailyClassEntry] = Field(default_factory=list)
    total_sessions: int = 0
    total_students: int = 0
    total_present: int = 0
    attendance_percentage: int = 0


class DailyOverallStats(CamelModel):
    total_days: int
    total_sessions: int
    average_attendance: int


class DateRangeSummaryResponse(CamelModel):
    date_range: DateRange
    daily_summary: List[DailySummary]
    overall_stats: DailyOverallStats


class AttendanceRollup(CamelModel):
    """Counts of sessions attended within a window."""

    total_classes: int = 0
    present_classes: int = 0
    absent_classes: int = 0
    attendance_percentage: int = 0


class TeacherSessionStats(CamelModel):
    total_classes: int = 0
    classes_taken: int = 0
    classes_skipped: int = 0
    attendance_percentage: int = 0


class ClassRollup(AttendanceRollup):
    class_: ClassBrief = Field(alias="class")
    teacher: Optional[UserBrief] = None


class StudentClassSummary(CamelModel):
    overall_summary: AttendanceRollup
    class_summary: List[ClassRollup]


class AdminReportResponse(CamelModel):
    date_range: DateRange
    attendance: List[AttendanceRecordResponse]
    daily_summary: List[DailySummary]
    overall_stats: DailyOverallStats


class StudentAttendanceSummary(AttendanceRollup):
    records: List[StudentAttendanceItem] = Field(default_factory=list)


class TeacherAttendanceSummary(TeacherSessionStats):
    records: List[AttendanceRecordResponse] = Field(default_factory=list)


class AdminAttendanceSummary(DailyOverallStats):
    date_range: DateRange
