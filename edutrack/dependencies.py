"""FastAPI dependency helpers.

Collaborators with a process lifetime (identity verifier, notifier, role
policy) are created in ``create_app`` and read from ``app.state`` here so
tests can swap them through ``dependency_overrides``.
"""

from typing import Callable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from edutrack.config import get_settings
from edutrack.db import get_db
from edutrack.errors import InvalidCredential, Unauthenticated
from edutrack.models import UserRole
from edutrack.services.identity import CredentialError, IdentityVerifier, VerifiedIdentity, parse_bearer
from edutrack.services.ledger import AttendanceLedger
from edutrack.services.notifications import Notifier
from edutrack.services.onboarding import RolePolicy
from edutrack.services.policy import authorize
from edutrack.services.principal import Principal, PrincipalResolver
from edutrack.utils.dates import get_zone


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_role_policy(request: Request) -> RolePolicy:
    return request.app.state.role_policy


def get_verified_identity(
    authorization: Optional[str] = Header(None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> VerifiedIdentity:
    """Bearer header -> verified identity.

    A missing or malformed header is 401; a token the verifier rejects is 403.
    """

    token = parse_bearer(authorization)
    if token is None:
        raise Unauthenticated()
    try:
        return verifier.verify(token)
    except CredentialError as exc:
        raise InvalidCredential(str(exc)) from exc


def get_current_principal(
    identity: VerifiedIdentity = Depends(get_verified_identity),
    db: Session = Depends(get_db),
) -> Principal:
    return PrincipalResolver(db).resolve(identity.subject_id)


def require_roles(*roles: UserRole, approved: bool = True) -> Callable[..., Principal]:
    """Dependency factory running the access policy for ``roles``."""

    required = frozenset(roles)

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        authorize(principal, required, require_approved=approved).raise_for_deny()
        return principal

    return dependency


def get_ledger(db: Session = Depends(get_db)) -> AttendanceLedger:
    return AttendanceLedger(db, get_zone(get_settings().timezone))
