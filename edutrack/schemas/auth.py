"""Login and profile schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import ConfigDict, Field

from edutrack.models import User, UserRole
from edutrack.schemas.common import CamelModel


class UserProfile(CamelModel):
    """Contact, grade and guardian sub-record stored on ``User.profile``."""

    phone_number: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None

    # students
    parent_name: Optional[str] = None
    parent_phone_number: Optional[str] = None
    grade: Optional[str] = None
    stream: Optional[str] = None
    school_name: Optional[str] = None
    previous_tuition_experience: Optional[str] = None

    # teachers
    qualifications: Optional[str] = None
    experience: Optional[str] = None
    specialization: Optional[str] = None
    teaching_grades: List[str] = Field(default_factory=list)
    teaching_subjects: List[str] = Field(default_factory=list)
    joined_date: Optional[date] = None

    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relation: Optional[str] = None


class ProfileFieldsUpdate(UserProfile):
    """Partial profile update; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    teaching_grades: Optional[List[str]] = None
    teaching_subjects: Optional[List[str]] = None


class ProfileUpdate(CamelModel):
    """Self-service update command.

    Only ``name`` and profile fields are representable; role, email, approval
    and block state cannot be changed through it.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    profile: Optional[ProfileFieldsUpdate] = None


class LoginRequest(CamelModel):
    subject_id: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None


class UserResponse(CamelModel):
    id: int
    external_id: str
    email: str
    name: str
    role: UserRole
    is_approved: bool
    is_blocked: bool
    profile: UserProfile = Field(default_factory=UserProfile)
    admission_number: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    created_at: datetime


class UserForStorage(CamelModel):
    """Compact user payload the frontend keeps in local storage."""

    id: int
    external_id: str
    email: str
    name: str
    display_name: str
    role: UserRole
    is_approved: bool


class LoginResponse(CamelModel):
    user: UserResponse
    user_for_storage: UserForStorage
    message: str


def user_for_storage(user: User, display_name: Optional[str] = None) -> UserForStorage:
    return UserForStorage(
        id=user.id,
        external_id=user.external_id,
        email=user.email,
        name=user.name,
        display_name=display_name or user.name,
        role=user.role,
        is_approved=user.is_approved,
    )
