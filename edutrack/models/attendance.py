"""Attendance ledger models."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edutrack.db import Base
from edutrack.models.classroom import Classroom
from edutrack.models.enums import AttendanceStatus
from edutrack.models.user import User, utcnow


class AttendanceRecord(Base):
    """One class session on one calendar day.

    ``day`` is derived from ``date`` and is part of the unique key, so a
    second write for the same class and day can only ever merge.
    """

    __tablename__ = "attendance_records"
    __table_args__ = (UniqueConstraint("class_id", "day", name="uq_attendance_class_day"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    teacher_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    date: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    day: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)

    # Teacher's own attendance for the session
    teacher_status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus), default=AttendanceStatus.PRESENT, nullable=False
    )
    teacher_latitude: Mapped[Optional[float]] = mapped_column(Float)
    teacher_longitude: Mapped[Optional[float]] = mapped_column(Float)
    teacher_marked_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    classroom: Mapped[Classroom] = relationship()
    teacher: Mapped[User] = relationship()
    entries: Mapped[List["AttendanceEntry"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="AttendanceEntry.position",
    )

    def status_of(self, student_id: int) -> Optional[AttendanceStatus]:
        for entry in self.entries:
            if entry.student_id == student_id:
                return entry.status
        return None

    @property
    def has_location(self) -> bool:
        return self.teacher_latitude is not None and self.teacher_longitude is not None

    def __repr__(self) -> str:
        return f"<AttendanceRecord(id={self.id}, class_id={self.class_id}, day={self.day})>"


class AttendanceEntry(Base):
    """A single student's status inside a record."""

    __tablename__ = "attendance_entries"
    __table_args__ = (
        UniqueConstraint("record_id", "student_id", name="uq_attendance_entry_student"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("attendance_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[AttendanceStatus] = mapped_column(Enum(AttendanceStatus), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    record: Mapped[AttendanceRecord] = relationship(back_populates="entries")
    student: Mapped[User] = relationship()
