"""Class management schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field

from edutrack.models import Classroom
from edutrack.schemas.common import CamelModel, UserBrief


class ClassCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    subject: str = Field(min_length=1, max_length=100)
    teacher_id: int
    grade: Optional[str] = None
    stream: Optional[str] = None
    description: Optional[str] = None
    student_ids: List[int] = Field(default_factory=list)
    max_students: int = Field(default=30, ge=1)


class TeacherClassCreate(CamelModel):
    """A teacher creating a class they will own."""

    name: str = Field(min_length=1, max_length=100)
    subject: str = Field(min_length=1, max_length=100)
    grade: str = Field(min_length=1, max_length=20)
    stream: Optional[str] = None
    description: Optional[str] = None


class ClassUpdate(CamelModel):
    """Allow-listed class fields; ownership moves only through assign-teacher."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=100)
    grade: Optional[str] = None
    stream: Optional[str] = None
    description: Optional[str] = None
    max_students: Optional[int] = Field(default=None, ge=1)
    student_ids: Optional[List[int]] = None


class AssignTeacher(CamelModel):
    teacher_id: int


class ClassResponse(CamelModel):
    id: int
    name: str
    subject: str
    grade: Optional[str] = None
    stream: Optional[str] = None
    description: Optional[str] = None
    max_students: int
    teacher: UserBrief
    students: List[UserBrief]
    student_count: int
    created_at: datetime

    @classmethod
    def from_class(cls, classroom: Classroom) -> "ClassResponse":
        return cls(
            id=classroom.id,
            name=classroom.name,
            subject=classroom.subject,
            grade=classroom.grade,
            stream=classroom.stream,
            description=classroom.description,
            max_students=classroom.max_students,
            teacher=UserBrief.model_validate(classroom.teacher),
            students=[UserBrief.model_validate(s) for s in classroom.students],
            student_count=len(classroom.students),
            created_at=classroom.created_at,
        )


class StudyMaterialBrief(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    subject: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    uploaded_at: datetime
