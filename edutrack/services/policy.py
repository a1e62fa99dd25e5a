"""Access policy: a pure decision over role, approval and block state."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import AbstractSet, Optional, Type

from edutrack.errors import AppError, Blocked, InsufficientRole, PendingApproval, Unauthenticated
from edutrack.models import UserRole
from edutrack.services.principal import Principal


class DenyReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    BLOCKED = "blocked"
    INSUFFICIENT_ROLE = "insufficient_role"
    PENDING_APPROVAL = "pending_approval"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    def raise_for_deny(self) -> None:
        if not self.allowed:
            raise _ERRORS[self.reason]()


ALLOW = Decision(True)

_ERRORS: dict[DenyReason, Type[AppError]] = {
    DenyReason.UNAUTHENTICATED: Unauthenticated,
    DenyReason.BLOCKED: Blocked,
    DenyReason.INSUFFICIENT_ROLE: InsufficientRole,
    DenyReason.PENDING_APPROVAL: PendingApproval,
}


def authorize(
    principal: Optional[Principal],
    required_roles: AbstractSet[UserRole],
    require_approved: bool = True,
) -> Decision:
    """Decide whether ``principal`` may use a capability.

    Block state is checked before role and approval so that a blocked admin
    is still denied.
    """

    if principal is None:
        return Decision(False, DenyReason.UNAUTHENTICATED)
    if principal.is_blocked:
        return Decision(False, DenyReason.BLOCKED)
    if principal.role not in required_roles:
        return Decision(False, DenyReason.INSUFFICIENT_ROLE)
    if require_approved and not principal.is_approved:
        return Decision(False, DenyReason.PENDING_APPROVAL)
    return ALLOW


ALL_ROLES = frozenset(UserRole)
STAFF_ROLES = frozenset({UserRole.TEACHER, UserRole.ADMIN})
