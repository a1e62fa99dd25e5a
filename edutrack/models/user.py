"""User and approval-request models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from edutrack.db import Base
from edutrack.errors import Conflict
from edutrack.models.enums import RequestStatus, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Platform account keyed by the verified identity subject.

    ``profile`` stores the contact/grade/guardian sub-record as JSON; its shape
    is validated by ``edutrack.schemas.auth.UserProfile`` on the way in.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), default=UserRole.STUDENT, nullable=False
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    blocked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    blocked_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )

    profile: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    admission_number: Mapped[Optional[str]] = mapped_column(String(50))
    subjects: Mapped[List[str]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    requests: Mapped[List["UserRequest"]] = relationship(
        back_populates="user",
        foreign_keys="UserRequest.user_id",
        cascade="all, delete-orphan",
        order_by="UserRequest.requested_at",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"


class UserRequest(Base):
    """Approval workflow record.

    Each instance moves out of ``pending`` at most once. Re-applying after a
    rejection creates a new instance so the history is never rewritten.
    """

    __tablename__ = "user_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus), default=RequestStatus.PENDING, nullable=False
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    processed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text)
    profile_snapshot: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    user: Mapped[User] = relationship(back_populates="requests", foreign_keys=[user_id])
    processed_by: Mapped[Optional[User]] = relationship(foreign_keys=[processed_by_id])

    def transition(
        self,
        status: RequestStatus,
        *,
        processed_by_id: Optional[int],
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Move a pending request to a terminal state."""

        if self.status != RequestStatus.PENDING:
            raise Conflict("Request has already been processed")
        if status == RequestStatus.PENDING:
            raise Conflict("Request is already pending")
        self.status = status
        self.processed_by_id = processed_by_id
        self.admin_notes = notes
        if self.processed_at is None:
            self.processed_at = now or utcnow()

    def __repr__(self) -> str:
        return f"<UserRequest(id={self.id}, user_id={self.user_id}, status={self.status.value})>"
