"""Login flow: resolve-or-register a verified identity.

Registration lives here rather than in ``PrincipalResolver`` so that every
read of a principal stays side-effect free.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from edutrack.errors import Blocked, Conflict, PendingApproval
from edutrack.models import RequestStatus, User, UserRequest, UserRole
from edutrack.schemas.auth import ProfileUpdate, UserResponse, user_for_storage
from edutrack.services.identity import VerifiedIdentity

logger = logging.getLogger(__name__)

PENDING_MESSAGE = "Account pending approval. You will receive an email when your account is verified."
BLOCKED_MESSAGE = "You are not allowed to sign in, Please contact Admin for further proceedings."

# a user whose last request ended this way may apply again
CLOSED_WITHOUT_APPROVAL = frozenset({RequestStatus.REJECTED, RequestStatus.BLOCKED})


class RolePolicy:
    """Initial role grant for new accounts, driven by an admin allow-list."""

    def __init__(self, admin_emails: Iterable[str] = (), admin_domains: Iterable[str] = ()) -> None:
        self.admin_emails = {e.strip().lower() for e in admin_emails if e.strip()}
        self.admin_domains = {d.strip().lower().lstrip("@") for d in admin_domains if d.strip()}

    def is_admin(self, email: str) -> bool:
        email = email.lower()
        if email in self.admin_emails:
            return True
        return any(email.endswith(f"@{domain}") for domain in self.admin_domains)

    def initial_grant(self, email: str) -> tuple[UserRole, bool]:
        if self.is_admin(email):
            return UserRole.ADMIN, True
        return UserRole.STUDENT, False


@dataclass(frozen=True)
class LoginOutcome:
    user: User
    created: bool

    @property
    def message(self) -> str:
        if not self.created:
            return "Signed in successfully"
        if self.user.is_approved:
            return "Admin account created and approved successfully."
        return "Registration request submitted. Please wait for admin approval."


@dataclass(frozen=True)
class UserCreated:
    user: User


@dataclass(frozen=True)
class UserExists:
    user: User


def find_by_subject(db: Session, subject_id: str) -> Optional[User]:
    return db.scalar(select(User).where(User.external_id == subject_id))


def latest_request(db: Session, user_id: int) -> Optional[UserRequest]:
    return db.scalar(
        select(UserRequest)
        .where(UserRequest.user_id == user_id)
        .order_by(UserRequest.requested_at.desc(), UserRequest.id.desc())
        .limit(1)
    )


def open_request(db: Session, user: User) -> UserRequest:
    request = UserRequest(
        user_id=user.id,
        email=user.email,
        name=user.name,
        requested_role=user.role,
        status=RequestStatus.PENDING,
        profile_snapshot=dict(user.profile or {}),
    )
    db.add(request)
    return request


def create_user(
    db: Session,
    identity: VerifiedIdentity,
    email: str,
    display_name: Optional[str],
    role_policy: RolePolicy,
) -> Union[UserCreated, UserExists]:
    """Insert the account; a concurrent login that got there first wins."""

    role, approved = role_policy.initial_grant(email)
    user = User(
        external_id=identity.subject_id,
        email=email,
        name=display_name or identity.name or email.split("@")[0],
        role=role,
        is_approved=approved,
        profile={},
        subjects=[],
    )
    try:
        with db.begin_nested():
            db.add(user)
    except IntegrityError:
        existing = find_by_subject(db, identity.subject_id)
        if existing is None:
            raise Conflict("Email is already registered to another account")
        return UserExists(existing)
    return UserCreated(user)


def sync_admin(user: User, role_policy: RolePolicy) -> bool:
    """Promote allow-listed accounts; returns whether anything changed."""

    if role_policy.is_admin(user.email) and (user.role != UserRole.ADMIN or not user.is_approved):
        user.role = UserRole.ADMIN
        user.is_approved = True
        return True
    return False


def pending_details(user: User, display_name: Optional[str]) -> dict:
    return {
        "user": UserResponse.model_validate(user).model_dump(mode="json", by_alias=True),
        "userForStorage": user_for_storage(user, display_name).model_dump(mode="json", by_alias=True),
    }


def login(
    db: Session,
    identity: VerifiedIdentity,
    email: str,
    display_name: Optional[str],
    role_policy: RolePolicy,
) -> LoginOutcome:
    """Sign in, registering the account on first contact.

    Raises ``Blocked`` for blocked accounts and ``PendingApproval`` (carrying
    the user payload) for accounts that are not approved yet. A user whose
    last request was rejected, or closed by a block that has since been
    lifted, gets a fresh pending request.
    """

    user = find_by_subject(db, identity.subject_id)
    if user is None:
        outcome = create_user(db, identity, email, display_name, role_policy)
        if isinstance(outcome, UserCreated):
            user = outcome.user
            if not user.is_approved:
                open_request(db, user)
            db.commit()
            db.refresh(user)
            logger.info("Registered user id=%s role=%s", user.id, user.role.value)
            return LoginOutcome(user=user, created=True)
        user = outcome.user
        logger.info("Concurrent registration for subject=%s, using existing user", identity.subject_id)

    if sync_admin(user, role_policy):
        db.commit()
        logger.info("Promoted allow-listed user id=%s to admin", user.id)

    if user.is_blocked:
        raise Blocked(BLOCKED_MESSAGE)

    if not user.is_approved:
        last = latest_request(db, user.id)
        if last is not None and last.status in CLOSED_WITHOUT_APPROVAL:
            open_request(db, user)
            db.commit()
            logger.info("Resubmitted approval request for user id=%s", user.id)
        raise PendingApproval(PENDING_MESSAGE, details=pending_details(user, display_name))

    return LoginOutcome(user=user, created=False)


def update_profile(db: Session, user: User, command: ProfileUpdate) -> User:
    """Apply a self-service update; only explicitly sent fields change."""

    if command.name is not None:
        user.name = command.name
    if command.profile is not None:
        changes = command.profile.model_dump(mode="json", by_alias=True, exclude_unset=True)
        user.profile = {**(user.profile or {}), **changes}
    db.commit()
    db.refresh(user)
    return user
