"""Seed a demo admin, teacher, two students and one class.

Prints a development token for each account so the API can be tried at once.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from edutrack.config import get_settings
from edutrack.db import Base, engine, session_scope
from edutrack.models import Classroom, User, UserRole
from edutrack.services.identity import SignedTokenVerifier

ACCOUNTS = [
    ("demo-admin", "admin@edutrack.local", "Demo Admin", UserRole.ADMIN),
    ("demo-teacher", "teacher@edutrack.local", "Demo Teacher", UserRole.TEACHER),
    ("demo-student-1", "student1@edutrack.local", "Asha Student", UserRole.STUDENT),
    ("demo-student-2", "student2@edutrack.local", "Ravi Student", UserRole.STUDENT),
]


def seed() -> None:
    Path("storage").mkdir(exist_ok=True)
    Base.metadata.create_all(bind=engine)
    settings = get_settings()
    verifier = SignedTokenVerifier(settings.identity_secret, settings.identity_token_ttl_hours)

    with session_scope() as db:
        users = {}
        for subject, email, name, role in ACCOUNTS:
            user = db.scalar(select(User).where(User.external_id == subject))
            if user is None:
                user = User(
                    external_id=subject, email=email, name=name, role=role, is_approved=True
                )
                db.add(user)
                db.flush()
                print(f"  + {role.value:<8} {email}")
            users[subject] = user

        teacher = users["demo-teacher"]
        classroom = db.scalar(select(Classroom).where(Classroom.teacher_id == teacher.id))
        if classroom is None:
            classroom = Classroom(
                name="Physics 11A", subject="Physics", grade="11th", teacher_id=teacher.id
            )
            classroom.students = [users["demo-student-1"], users["demo-student-2"]]
            db.add(classroom)
            print(f"  + class    {classroom.name}")

    print("\nDevelopment tokens:")
    for subject, email, name, _ in ACCOUNTS:
        print(f"  {email}: {verifier.issue(subject, email, name)}")


if __name__ == "__main__":
    seed()
