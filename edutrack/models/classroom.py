"""Class (teaching unit) and study material models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edutrack.db import Base
from edutrack.models.user import User, utcnow


# Composite primary key gives enrollment set semantics
class_students = Table(
    "class_students",
    Base.metadata,
    Column("class_id", ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Classroom(Base):
    """A class owned by exactly one teacher."""

    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    grade: Mapped[Optional[str]] = mapped_column(String(20))  # "10th", "11th", ...
    stream: Mapped[Optional[str]] = mapped_column(String(30))  # Science / Commerce / Arts
    description: Mapped[Optional[str]] = mapped_column(Text)
    teacher_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    max_students: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    teacher: Mapped[User] = relationship(foreign_keys=[teacher_id])
    students: Mapped[List[User]] = relationship(
        secondary=class_students, order_by=User.name
    )
    materials: Mapped[List["StudyMaterial"]] = relationship(
        back_populates="classroom", cascade="all, delete-orphan"
    )

    @property
    def student_ids(self) -> set[int]:
        return {student.id for student in self.students}

    def __repr__(self) -> str:
        return f"<Classroom(id={self.id}, name={self.name}, teacher_id={self.teacher_id})>"


class StudyMaterial(Base):
    """Metadata for a file kept in external storage."""

    __tablename__ = "study_materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    class_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"), index=True
    )
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    file_url: Mapped[Optional[str]] = mapped_column(String(512))
    file_name: Mapped[Optional[str]] = mapped_column(String(255))
    file_type: Mapped[Optional[str]] = mapped_column(String(100))
    file_size: Mapped[Optional[int]] = mapped_column(Integer)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    classroom: Mapped[Optional[Classroom]] = relationship(back_populates="materials")
    teacher: Mapped[User] = relationship()
