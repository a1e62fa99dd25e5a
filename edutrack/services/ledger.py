"""Attendance ledger: one record per class per calendar day.

The day lookup is the deduplication key. Inserts run inside a SAVEPOINT so a
concurrent writer that wins the ``(class_id, day)`` unique constraint turns
into an ``AlreadyExists`` outcome and the loser merges into the winner's
record instead of failing.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Generic, List, Optional, Sequence, TypeVar, Union
from zoneinfo import ZoneInfo

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from edutrack.errors import Forbidden, NotFound, NotFoundOrForbidden, UnenrolledStudent, ValidationError
from edutrack.models import AttendanceEntry, AttendanceRecord, AttendanceStatus, Classroom
from edutrack.schemas.attendance import GeoPoint, StudentMark
from edutrack.services.scope import ReportScope, contains_student
from edutrack.utils.dates import DateLike, normalize_day, to_local_datetime

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AttendanceFilter:
    """Optional narrowing applied on top of a ``ReportScope``.

    Date bounds are inclusive calendar days.
    """

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    class_id: Optional[int] = None
    student_id: Optional[int] = None


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    total: int = 0


@dataclass(frozen=True)
class Created:
    record: AttendanceRecord


@dataclass(frozen=True)
class AlreadyExists:
    record: AttendanceRecord


InsertOutcome = Union[Created, AlreadyExists]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttendanceLedger:
    """Owns writes and scoped reads of ``AttendanceRecord``."""

    def __init__(
        self,
        db: Session,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.tz = tz
        self.clock = clock

    def local_today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    # === writes ===

    def upsert_day(
        self,
        class_id: int,
        teacher_id: int,
        when: DateLike,
        marks: Sequence[StudentMark],
        location: Optional[GeoPoint] = None,
    ) -> AttendanceRecord:
        """Create or merge the record for ``class_id`` on the day of ``when``."""

        classroom = self._owned_class(class_id, teacher_id)
        self._check_marks(classroom, marks)

        day = normalize_day(when, self.tz)
        record = self.find_for_day(class_id, day)
        if record is None:
            outcome = self._insert_day(classroom, teacher_id, when, day, marks, location)
            if isinstance(outcome, Created):
                self.db.commit()
                logger.info("Attendance created class=%s day=%s record=%s", class_id, day, outcome.record.id)
                return self._reload(outcome.record.id)
            record = outcome.record
            logger.info("Attendance insert lost race class=%s day=%s, merging", class_id, day)

        # the teacher sub-record being replaced is the writer's
        record.teacher_id = teacher_id
        self._replace_entries(record, marks)
        self._set_teacher_attendance(record, location)
        self.db.commit()
        logger.info("Attendance merged class=%s day=%s record=%s", class_id, day, record.id)
        return self._reload(record.id)

    def update_record(
        self,
        record_id: int,
        teacher_id: int,
        marks: Sequence[StudentMark],
        location: Optional[GeoPoint] = None,
    ) -> AttendanceRecord:
        """Replace the student list of a record the teacher owns."""

        record = self._owned_record(record_id, teacher_id)
        self._check_marks(record.classroom, marks)
        self._replace_entries(record, marks)
        if location is not None:
            record.teacher_latitude = location.latitude
            record.teacher_longitude = location.longitude
        self.db.commit()
        return self._reload(record.id)

    def delete(self, record_id: int, requester_id: int) -> None:
        record = self._owned_record(record_id, requester_id)
        self.db.delete(record)
        self.db.commit()
        logger.info("Attendance deleted record=%s by=%s", record_id, requester_id)

    # === reads ===

    def find_for_day(self, class_id: int, day: date) -> Optional[AttendanceRecord]:
        return self.db.scalar(
            select(AttendanceRecord).where(
                AttendanceRecord.class_id == class_id, AttendanceRecord.day == day
            )
        )

    def existing_for_day(
        self, class_id: int, teacher_id: int, when: DateLike
    ) -> tuple[Classroom, Optional[AttendanceRecord]]:
        classroom = self._owned_class(class_id, teacher_id)
        record = self.find_for_day(class_id, normalize_day(when, self.tz))
        return classroom, self._reload(record.id) if record else None

    def get(self, record_id: int, scope: ReportScope) -> AttendanceRecord:
        stmt = self._with_relations(
            select(AttendanceRecord).where(AttendanceRecord.id == record_id, *scope.conditions())
        )
        record = self.db.scalar(stmt)
        if record is None:
            raise NotFound("Attendance record not found")
        return record

    def find(
        self,
        scope: ReportScope,
        filters: AttendanceFilter = AttendanceFilter(),
        page: int = 1,
        limit: int = 10,
    ) -> Page[AttendanceRecord]:
        stmt = self._filtered(scope, filters)
        total = self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        items = self.db.scalars(
            self._with_relations(self._ordered(stmt)).offset((page - 1) * limit).limit(limit)
        ).all()
        return Page(items=list(items), total=total)

    def records_for(
        self, scope: ReportScope, filters: AttendanceFilter = AttendanceFilter()
    ) -> List[AttendanceRecord]:
        """Unpaginated scoped fetch feeding the aggregator."""

        stmt = self._with_relations(self._ordered(self._filtered(scope, filters)))
        return list(self.db.scalars(stmt).all())

    # === helpers ===

    def _owned_class(self, class_id: int, teacher_id: int) -> Classroom:
        classroom = self.db.get(Classroom, class_id)
        if classroom is None or classroom.teacher_id != teacher_id:
            raise Forbidden("Not authorized for this class")
        return classroom

    def _owned_record(self, record_id: int, teacher_id: int) -> AttendanceRecord:
        record = self.db.scalar(
            select(AttendanceRecord).where(
                AttendanceRecord.id == record_id, AttendanceRecord.teacher_id == teacher_id
            )
        )
        if record is None:
            raise NotFoundOrForbidden("Attendance record not found or not authorized")
        return record

    def _check_marks(self, classroom: Classroom, marks: Sequence[StudentMark]) -> None:
        counts = Counter(mark.student for mark in marks)
        duplicates = sorted(sid for sid, n in counts.items() if n > 1)
        if duplicates:
            raise ValidationError.for_fields(
                {"students": f"Duplicate student ids: {duplicates}"},
                "Each student may appear only once per session",
            )
        enrolled = classroom.student_ids
        invalid = [mark.student for mark in marks if mark.student not in enrolled]
        if invalid:
            raise UnenrolledStudent(invalid)

    def _insert_day(
        self,
        classroom: Classroom,
        teacher_id: int,
        when: DateLike,
        day: date,
        marks: Sequence[StudentMark],
        location: Optional[GeoPoint],
    ) -> InsertOutcome:
        record = AttendanceRecord(
            class_id=classroom.id,
            teacher_id=teacher_id,
            date=to_local_datetime(when, self.tz),
            day=day,
            entries=self._build_entries(marks),
        )
        self._set_teacher_attendance(record, location)
        try:
            with self.db.begin_nested():
                self.db.add(record)
        except IntegrityError:
            existing = self.find_for_day(classroom.id, day)
            if existing is None:
                raise
            return AlreadyExists(existing)
        return Created(record)

    def _replace_entries(self, record: AttendanceRecord, marks: Sequence[StudentMark]) -> None:
        if record.entries:
            record.entries.clear()
            # old rows must be gone before re-inserting the same (record, student) pairs
            self.db.flush()
        record.entries.extend(self._build_entries(marks))

    @staticmethod
    def _build_entries(marks: Sequence[StudentMark]) -> List[AttendanceEntry]:
        return [
            AttendanceEntry(student_id=mark.student, status=mark.status, position=index)
            for index, mark in enumerate(marks)
        ]

    def _set_teacher_attendance(
        self, record: AttendanceRecord, location: Optional[GeoPoint]
    ) -> None:
        record.teacher_status = AttendanceStatus.PRESENT
        record.teacher_marked_at = self.clock()
        record.teacher_latitude = location.latitude if location else None
        record.teacher_longitude = location.longitude if location else None

    def _filtered(self, scope: ReportScope, filters: AttendanceFilter) -> Select:
        stmt = select(AttendanceRecord).where(*scope.conditions())
        if filters.start_date is not None:
            stmt = stmt.where(AttendanceRecord.day >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(AttendanceRecord.day <= filters.end_date)
        if filters.class_id is not None:
            stmt = stmt.where(AttendanceRecord.class_id == filters.class_id)
        # student membership lives in the nested entry list
        if filters.student_id is not None and filters.student_id != scope.student_id:
            stmt = stmt.where(contains_student(filters.student_id))
        return stmt

    @staticmethod
    def _ordered(stmt: Select) -> Select:
        return stmt.order_by(AttendanceRecord.day.desc(), AttendanceRecord.id.desc())

    @staticmethod
    def _with_relations(stmt: Select) -> Select:
        return stmt.options(
            joinedload(AttendanceRecord.classroom),
            joinedload(AttendanceRecord.teacher),
            selectinload(AttendanceRecord.entries).joinedload(AttendanceEntry.student),
        )

    def _reload(self, record_id: int) -> AttendanceRecord:
        self.db.expire_all()
        return self.db.scalars(
            self._with_relations(select(AttendanceRecord).where(AttendanceRecord.id == record_id))
        ).one()
