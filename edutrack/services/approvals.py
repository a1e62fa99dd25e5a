"""Approval workflow and account administration."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from edutrack.errors import NotFound, UserNotFound, ValidationError
from edutrack.models import (
    REQUESTABLE_ROLES,
    Classroom,
    RequestStatus,
    User,
    UserRequest,
    UserRole,
)
from edutrack.models.user import utcnow
from edutrack.schemas.admin import DashboardStats, RequestStats
from edutrack.services.notifications import Notifier
from edutrack.services.principal import Principal

logger = logging.getLogger(__name__)


def get_request(db: Session, request_id: int) -> UserRequest:
    request = db.scalar(
        select(UserRequest)
        .options(joinedload(UserRequest.user), joinedload(UserRequest.processed_by))
        .where(UserRequest.id == request_id)
    )
    if request is None:
        raise NotFound("User request not found")
    return request


def approve(
    db: Session,
    request_id: int,
    role: UserRole,
    admin: Principal,
    notifier: Notifier,
    notes: Optional[str] = None,
) -> UserRequest:
    """Approve a pending request with the granted role.

    The notification goes out after the commit; a delivery failure never
    undoes the approval.
    """

    if role not in REQUESTABLE_ROLES:
        raise ValidationError.for_fields({"role": "Invalid role"}, "Invalid role")
    request = get_request(db, request_id)
    request.transition(RequestStatus.APPROVED, processed_by_id=admin.id, notes=notes)
    user = request.user
    user.role = role
    user.is_approved = True
    db.commit()
    logger.info("Request %s approved by %s as %s", request.id, admin.id, role.value)

    try:
        notifier.send_approval(user)
    except Exception:
        logger.warning("Approval notification for user %s failed", user.id, exc_info=True)
    return get_request(db, request.id)


def reject(
    db: Session, request_id: int, admin: Principal, notes: Optional[str] = None
) -> UserRequest:
    request = get_request(db, request_id)
    request.transition(RequestStatus.REJECTED, processed_by_id=admin.id, notes=notes)
    db.commit()
    logger.info("Request %s rejected by %s", request.id, admin.id)
    return get_request(db, request.id)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


def block_user(db: Session, user_id: int, admin: Principal) -> User:
    """Block an account and close its pending request, if any."""

    user = _get_user(db, user_id)
    user.is_blocked = True
    user.blocked_at = utcnow()
    user.blocked_by_id = admin.id
    pending = db.scalars(
        select(UserRequest).where(
            UserRequest.user_id == user.id, UserRequest.status == RequestStatus.PENDING
        )
    ).all()
    for request in pending:
        request.transition(RequestStatus.BLOCKED, processed_by_id=admin.id)
    db.commit()
    db.refresh(user)
    logger.info("User %s blocked by %s", user.id, admin.id)
    return user


def unblock_user(db: Session, user_id: int) -> User:
    user = _get_user(db, user_id)
    user.is_blocked = False
    user.blocked_at = None
    user.blocked_by_id = None
    db.commit()
    db.refresh(user)
    logger.info("User %s unblocked", user.id)
    return user


def request_stats(db: Session) -> RequestStats:
    rows = db.execute(
        select(UserRequest.status, func.count(UserRequest.id)).group_by(UserRequest.status)
    ).all()
    counts = {status.value: count for status, count in rows}
    return RequestStats(**counts)


def list_requests(db: Session, status: Optional[RequestStatus] = None) -> List[UserRequest]:
    stmt = (
        select(UserRequest)
        .options(joinedload(UserRequest.user), joinedload(UserRequest.processed_by))
        .order_by(UserRequest.requested_at.desc(), UserRequest.id.desc())
    )
    if status is not None:
        stmt = stmt.where(UserRequest.status == status)
    return list(db.scalars(stmt).all())


def list_users(db: Session, role: Optional[UserRole] = None) -> List[User]:
    stmt = select(User).where(User.is_approved.is_(True)).order_by(User.created_at.desc())
    if role is not None:
        stmt = stmt.where(User.role == role)
    return list(db.scalars(stmt).all())


def dashboard_stats(db: Session) -> DashboardStats:
    def approved(role: UserRole) -> int:
        return db.scalar(
            select(func.count(User.id)).where(User.role == role, User.is_approved.is_(True))
        ) or 0

    return DashboardStats(
        total_students=approved(UserRole.STUDENT),
        total_teachers=approved(UserRole.TEACHER),
        total_admins=approved(UserRole.ADMIN),
        pending_requests=db.scalar(
            select(func.count(UserRequest.id)).where(UserRequest.status == RequestStatus.PENDING)
        ) or 0,
        total_classes=db.scalar(select(func.count(Classroom.id))) or 0,
    )
