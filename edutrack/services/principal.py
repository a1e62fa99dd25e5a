"""Maps a verified identity subject onto a platform principal."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from edutrack.errors import UserNotFound
from edutrack.models import User, UserRole


@dataclass(frozen=True)
class Principal:
    """The authenticated actor of a request."""

    id: int
    external_id: str
    email: str
    name: str
    role: UserRole
    is_approved: bool
    is_blocked: bool
    profile: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            id=user.id,
            external_id=user.external_id,
            email=user.email,
            name=user.name,
            role=user.role,
            is_approved=user.is_approved,
            is_blocked=user.is_blocked,
            profile=dict(user.profile or {}),
        )


class PrincipalResolver:
    """Read-only lookup; registration happens in the login flow."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_user(self, subject_id: str) -> Optional[User]:
        return self.db.scalar(select(User).where(User.external_id == subject_id))

    def resolve(self, subject_id: str) -> Principal:
        user = self.find_user(subject_id)
        if user is None:
            raise UserNotFound("User not found. Please sign up first.")
        return Principal.from_user(user)
