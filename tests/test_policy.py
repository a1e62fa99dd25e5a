import itertools

import pytest

from edutrack.errors import Blocked, InsufficientRole, PendingApproval, Unauthenticated
from edutrack.models import UserRole
from edutrack.services.policy import ALL_ROLES, STAFF_ROLES, DenyReason, authorize
from edutrack.services.principal import Principal


def _principal(role, approved, blocked):
    return Principal(
        id=1,
        external_id="sub-1",
        email="p@school.test",
        name="P",
        role=role,
        is_approved=approved,
        is_blocked=blocked,
    )


REQUIRED_SETS = [
    frozenset({UserRole.STUDENT}),
    frozenset({UserRole.TEACHER}),
    frozenset({UserRole.ADMIN}),
    STAFF_ROLES,
    ALL_ROLES,
]


@pytest.mark.parametrize(
    "role,approved,blocked,required,require_approved",
    list(itertools.product(UserRole, [True, False], [True, False], REQUIRED_SETS, [True, False])),
)
def test_policy_table(role, approved, blocked, required, require_approved):
    decision = authorize(_principal(role, approved, blocked), required, require_approved)

    if blocked:
        expected = DenyReason.BLOCKED
    elif role not in required:
        expected = DenyReason.INSUFFICIENT_ROLE
    elif require_approved and not approved:
        expected = DenyReason.PENDING_APPROVAL
    else:
        expected = None

    assert decision.allowed is (expected is None)
    assert decision.reason == expected


def test_missing_principal_is_unauthenticated():
    decision = authorize(None, ALL_ROLES)
    assert not decision.allowed
    with pytest.raises(Unauthenticated):
        decision.raise_for_deny()


def test_blocked_admin_is_still_denied():
    decision = authorize(_principal(UserRole.ADMIN, True, True), ALL_ROLES)
    with pytest.raises(Blocked):
        decision.raise_for_deny()


def test_deny_reasons_map_to_errors():
    with pytest.raises(InsufficientRole):
        authorize(_principal(UserRole.STUDENT, True, False), STAFF_ROLES).raise_for_deny()
    with pytest.raises(PendingApproval):
        authorize(_principal(UserRole.TEACHER, False, False), STAFF_ROLES).raise_for_deny()


def test_allow_does_not_raise():
    authorize(_principal(UserRole.TEACHER, True, False), STAFF_ROLES).raise_for_deny()
