import pytest

from edutrack.errors import Forbidden
from edutrack.models import UserRole
from edutrack.services.principal import Principal
from edutrack.services.scope import build_scope


def _principal(role, id=7):
    return Principal(
        id=id, external_id=f"s{id}", email=f"{id}@school.test", name="X",
        role=role, is_approved=True, is_blocked=False,
    )


def test_admin_is_unrestricted_and_honours_filters():
    assert build_scope(_principal(UserRole.ADMIN)).unrestricted
    scope = build_scope(_principal(UserRole.ADMIN), requested_teacher_id=3, requested_student_id=4)
    assert (scope.teacher_id, scope.student_id) == (3, 4)


def test_teacher_is_pinned_to_own_records():
    scope = build_scope(_principal(UserRole.TEACHER), requested_teacher_id=99, requested_student_id=4)
    assert scope.teacher_id == 7
    assert scope.student_id == 4
    assert len(scope.conditions()) == 2


def test_student_is_pinned_to_self():
    scope = build_scope(_principal(UserRole.STUDENT))
    assert scope.student_id == 7
    assert scope.teacher_id is None
    assert build_scope(_principal(UserRole.STUDENT), requested_student_id=7).student_id == 7


def test_student_asking_for_another_student_is_forbidden():
    with pytest.raises(Forbidden):
        build_scope(_principal(UserRole.STUDENT), requested_student_id=8)
