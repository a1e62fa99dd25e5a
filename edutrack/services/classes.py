"""Class management and enrollment."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from edutrack.errors import NotFound, NotFoundOrForbidden, ValidationError
from edutrack.models import Classroom, StudyMaterial, User, UserRole, class_students
from edutrack.schemas.classes import ClassCreate, ClassUpdate, TeacherClassCreate

logger = logging.getLogger(__name__)


def _with_members(stmt):
    return stmt.options(selectinload(Classroom.teacher), selectinload(Classroom.students))


def get_class(db: Session, class_id: int) -> Classroom:
    classroom = db.scalar(_with_members(select(Classroom).where(Classroom.id == class_id)))
    if classroom is None:
        raise NotFound("Class not found")
    return classroom


def list_classes(db: Session) -> List[Classroom]:
    stmt = _with_members(select(Classroom).order_by(Classroom.created_at.desc(), Classroom.id.desc()))
    return list(db.scalars(stmt).all())


def classes_for_teacher(db: Session, teacher_id: int) -> List[Classroom]:
    stmt = _with_members(
        select(Classroom).where(Classroom.teacher_id == teacher_id).order_by(Classroom.name)
    )
    return list(db.scalars(stmt).all())


def classes_for_student(db: Session, student_id: int) -> List[Classroom]:
    stmt = _with_members(
        select(Classroom)
        .join(class_students, class_students.c.class_id == Classroom.id)
        .where(class_students.c.student_id == student_id)
        .order_by(Classroom.name)
    )
    return list(db.scalars(stmt).all())


def enrolled_class(db: Session, class_id: int, student_id: int) -> Classroom:
    classroom = get_class(db, class_id)
    if student_id not in classroom.student_ids:
        raise NotFoundOrForbidden("Class not found or access denied")
    return classroom


def materials_for(db: Session, class_ids: Iterable[int], limit: Optional[int] = None) -> List[StudyMaterial]:
    ids = list(class_ids)
    if not ids:
        return []
    stmt = (
        select(StudyMaterial)
        .where(StudyMaterial.class_id.in_(ids))
        .order_by(StudyMaterial.uploaded_at.desc(), StudyMaterial.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def _approved_teacher(db: Session, teacher_id: int) -> User:
    teacher = db.get(User, teacher_id)
    if teacher is None or teacher.role != UserRole.TEACHER or not teacher.is_approved:
        raise ValidationError.for_fields(
            {"teacherId": "Invalid teacher ID or teacher not approved"},
            "Invalid teacher ID or teacher not approved",
        )
    return teacher


def _resolve_students(db: Session, student_ids: Iterable[int], max_students: int) -> List[User]:
    """Enrollment is a set; unknown ids and over-capacity lists are rejected."""

    unique_ids = list(dict.fromkeys(student_ids))
    if len(unique_ids) > max_students:
        raise ValidationError.for_fields(
            {"studentIds": f"Class can hold at most {max_students} students"},
            "Class is over capacity",
        )
    if not unique_ids:
        return []
    students = db.scalars(
        select(User).where(User.id.in_(unique_ids), User.role == UserRole.STUDENT)
    ).all()
    missing = sorted(set(unique_ids) - {s.id for s in students})
    if missing:
        raise ValidationError.for_fields(
            {"studentIds": f"Unknown student ids: {missing}"}, "Unknown students"
        )
    return list(students)


def create_class(db: Session, command: ClassCreate) -> Classroom:
    _approved_teacher(db, command.teacher_id)
    classroom = Classroom(
        name=command.name,
        subject=command.subject,
        grade=command.grade,
        stream=command.stream,
        description=command.description,
        teacher_id=command.teacher_id,
        max_students=command.max_students,
    )
    classroom.students = _resolve_students(db, command.student_ids, command.max_students)
    db.add(classroom)
    db.commit()
    logger.info("Class %s created for teacher %s", classroom.id, classroom.teacher_id)
    return get_class(db, classroom.id)


def create_teacher_class(db: Session, teacher_id: int, command: TeacherClassCreate) -> Classroom:
    duplicate = db.scalar(
        select(Classroom.id).where(
            Classroom.teacher_id == teacher_id,
            Classroom.grade == command.grade,
            Classroom.subject == command.subject,
        )
    )
    if duplicate is not None:
        raise ValidationError("You already have a class for this grade and subject")
    classroom = Classroom(
        name=command.name,
        subject=command.subject,
        grade=command.grade,
        stream=command.stream,
        description=command.description or f"{command.subject} class for {command.grade} students",
        teacher_id=teacher_id,
    )
    db.add(classroom)
    db.commit()
    logger.info("Teacher %s created class %s", teacher_id, classroom.id)
    return get_class(db, classroom.id)


def update_class(db: Session, class_id: int, command: ClassUpdate) -> Classroom:
    classroom = get_class(db, class_id)
    changes = command.model_dump(exclude_unset=True)
    student_ids = changes.pop("student_ids", None)
    for field, value in changes.items():
        if value is None and field in ("name", "subject", "max_students"):
            raise ValidationError.for_fields({field: "Field cannot be null"})
        setattr(classroom, field, value)
    if student_ids is not None:
        classroom.students = _resolve_students(db, student_ids, classroom.max_students)
    elif len(classroom.students) > classroom.max_students:
        raise ValidationError.for_fields(
            {"maxStudents": "Smaller than the current enrollment"}, "Class is over capacity"
        )
    db.commit()
    return get_class(db, class_id)


def delete_class(db: Session, class_id: int) -> None:
    classroom = get_class(db, class_id)
    db.delete(classroom)
    db.commit()
    logger.info("Class %s deleted", class_id)


def assign_teacher(db: Session, class_id: int, teacher_id: int) -> Classroom:
    teacher = _approved_teacher(db, teacher_id)
    classroom = get_class(db, class_id)
    classroom.teacher_id = teacher.id
    db.commit()
    logger.info("Class %s assigned to teacher %s", class_id, teacher_id)
    return get_class(db, class_id)
