"""Pure reductions over already-scoped attendance records.

Nothing here touches the session; callers fetch records through the ledger
and pass them in. Percentages are whole numbers rounded half up.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from datetime import date
from fractions import Fraction
from typing import Dict, Iterable, List, Sequence, Union

from edutrack.models import AttendanceRecord, AttendanceStatus, Classroom, User
from edutrack.schemas.common import ClassBrief, UserBrief
from edutrack.schemas.reports import (
    AttendanceRollup,
    ClassOverallStats,
    ClassRollup,
    ClassStats,
    ClassStudentStats,
    DailyClassEntry,
    DailyOverallStats,
    DailySummary,
    StudentClassSummary,
    StudentStats,
    TeacherSessionStats,
)


def round_half_up(value: Union[Fraction, float, int]) -> int:
    return int(math.floor(value + Fraction(1, 2)))


def percentage(part: int, whole: int) -> int:
    """``part / whole`` as a whole percentage; 0 when ``whole`` is 0."""

    if whole <= 0:
        return 0
    return round_half_up(Fraction(part * 100, whole))


def mean_percentage(values: Sequence[int]) -> int:
    if not values:
        return 0
    return round_half_up(Fraction(sum(values), len(values)))


def _tally(records: Iterable[AttendanceRecord], student_id: int) -> tuple[int, int, int]:
    total = present = absent = 0
    for record in records:
        status = record.status_of(student_id)
        if status is None:
            continue
        total += 1
        if status == AttendanceStatus.PRESENT:
            present += 1
        else:
            absent += 1
    return total, present, absent


def per_student_stats(records: Iterable[AttendanceRecord], student_id: int) -> StudentStats:
    """Sessions the student appears in, and how many they attended."""

    total, present, absent = _tally(records, student_id)
    return StudentStats(
        total=total, present=present, absent=absent, percentage=percentage(present, total)
    )


def per_class_stats(records: Sequence[AttendanceRecord], students: Sequence[User]) -> ClassStats:
    """Per-student figures plus the class average.

    The average is the mean of the per-student percentages, so a student with
    few recorded sessions weighs as much as one with many.
    """

    student_stats: List[ClassStudentStats] = []
    for student in students:
        stats = per_student_stats(records, student.id)
        student_stats.append(
            ClassStudentStats(student=UserBrief.model_validate(student), **stats.model_dump())
        )
    return ClassStats(
        student_stats=student_stats,
        overall_stats=ClassOverallStats(
            total_sessions=len(records),
            total_students=len(students),
            average_attendance=mean_percentage([s.percentage for s in student_stats]),
        ),
    )


def daily_summary(records: Iterable[AttendanceRecord]) -> List[DailySummary]:
    """Group sessions by calendar day, newest day first."""

    days: Dict[date, DailySummary] = OrderedDict()
    for record in records:
        summary = days.setdefault(record.day, DailySummary(date=record.day))
        present = sum(1 for e in record.entries if e.status == AttendanceStatus.PRESENT)
        total = len(record.entries)
        summary.classes.append(
            DailyClassEntry(
                class_=ClassBrief.model_validate(record.classroom),
                teacher=UserBrief.model_validate(record.teacher),
                present_count=present,
                total_count=total,
                attendance_percentage=percentage(present, total),
            )
        )
        summary.total_sessions += 1
        summary.total_students += total
        summary.total_present += present

    result = sorted(days.values(), key=lambda s: s.date, reverse=True)
    for summary in result:
        summary.attendance_percentage = percentage(summary.total_present, summary.total_students)
    return result


def daily_overall(summaries: Sequence[DailySummary]) -> DailyOverallStats:
    return DailyOverallStats(
        total_days=len(summaries),
        total_sessions=sum(s.total_sessions for s in summaries),
        average_attendance=mean_percentage([s.attendance_percentage for s in summaries]),
    )


def _rollup(total: int, present: int, absent: int) -> AttendanceRollup:
    return AttendanceRollup(
        total_classes=total,
        present_classes=present,
        absent_classes=absent,
        attendance_percentage=percentage(present, total),
    )


def monthly_rollup(
    records: Iterable[AttendanceRecord],
    student_id: int,
    month_start: date,
    month_end: date,
) -> AttendanceRollup:
    """Student counts over the inclusive ``[month_start, month_end]`` window."""

    window = [r for r in records if month_start <= r.day <= month_end]
    return _rollup(*_tally(window, student_id))


def teacher_session_stats(records: Sequence[AttendanceRecord]) -> TeacherSessionStats:
    taken = sum(1 for r in records if r.teacher_status == AttendanceStatus.PRESENT)
    return TeacherSessionStats(
        total_classes=len(records),
        classes_taken=taken,
        classes_skipped=len(records) - taken,
        attendance_percentage=percentage(taken, len(records)),
    )


def student_class_summary(
    classes: Sequence[Classroom],
    records: Sequence[AttendanceRecord],
    student_id: int,
) -> StudentClassSummary:
    # overall uses summed counts, not the mean of the class percentages
    by_class: Dict[int, List[AttendanceRecord]] = {c.id: [] for c in classes}
    for record in records:
        if record.class_id in by_class:
            by_class[record.class_id].append(record)

    class_summary: List[ClassRollup] = []
    sums = [0, 0, 0]
    for classroom in classes:
        counts = _tally(by_class[classroom.id], student_id)
        sums = [a + b for a, b in zip(sums, counts)]
        class_summary.append(
            ClassRollup(
                class_=ClassBrief.model_validate(classroom),
                teacher=UserBrief.model_validate(classroom.teacher) if classroom.teacher else None,
                **_rollup(*counts).model_dump(),
            )
        )
    return StudentClassSummary(overall_summary=_rollup(*sums), class_summary=class_summary)
