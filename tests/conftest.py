import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# must be set before edutrack.config is first imported
os.environ.setdefault("EDUTRACK_DATABASE_URL", "sqlite://")
os.environ.setdefault("EDUTRACK_IDENTITY_SECRET", "test-secret")

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edutrack.db import Base, build_engine, get_db
from edutrack.dependencies import get_identity_verifier, get_notifier, get_role_policy
from edutrack.main import app
from edutrack.models import Classroom, User, UserRole
from edutrack.services.identity import SignedTokenVerifier
from edutrack.services.ledger import AttendanceLedger
from edutrack.services.notifications import RecordingNotifier
from edutrack.services.onboarding import RolePolicy

# Use in-memory SQLite for testing to ensure isolation
engine = build_engine("sqlite://", poolclass=StaticPool)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_EMAIL = "head@school.test"


@pytest.fixture(scope="function")
def session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def verifier():
    return SignedTokenVerifier("test-secret", ttl_hours=1)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def role_policy():
    return RolePolicy(admin_emails=[ADMIN_EMAIL], admin_domains=["staff.school.test"])


@pytest.fixture(scope="function")
def client(session, verifier, notifier, role_policy):
    """
    Create a TestClient wired to the test session and in-memory collaborators.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_role_policy] = lambda: role_policy
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def ledger(session):
    fixed = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)
    return AttendanceLedger(session, ZoneInfo("UTC"), clock=lambda: fixed)


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(role=UserRole.STUDENT, approved=True, blocked=False, name=None, email=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            external_id=f"subject-{n}",
            email=email or f"user{n}@school.test",
            name=name or f"{role.value.title()} {n}",
            role=role,
            is_approved=approved,
            is_blocked=blocked,
            profile={},
            subjects=[],
        )
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def make_class(session):
    def _make(teacher, students=(), name="Physics 11A", subject="Physics", grade="11th"):
        classroom = Classroom(name=name, subject=subject, grade=grade, teacher_id=teacher.id)
        classroom.students = list(students)
        session.add(classroom)
        session.commit()
        return classroom

    return _make


@pytest.fixture
def auth_headers(verifier):
    def _headers(user):
        return {"Authorization": f"Bearer {verifier.issue(user.external_id, user.email, user.name)}"}

    return _headers
