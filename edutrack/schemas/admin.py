"""Admin workflow schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from edutrack.models import RequestStatus, UserRole
from edutrack.schemas.auth import UserResponse
from edutrack.schemas.common import CamelModel, UserBrief


class ApproveUserRequest(CamelModel):
    request_id: int
    role: UserRole
    admin_notes: Optional[str] = None


class RejectUserRequest(CamelModel):
    request_id: int
    admin_notes: Optional[str] = None


class UserRequestResponse(CamelModel):
    id: int
    user: UserBrief
    requested_role: UserRole
    status: RequestStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[UserBrief] = None
    admin_notes: Optional[str] = None
    profile_snapshot: Dict[str, Any] = Field(default_factory=dict)


class RequestStats(CamelModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    blocked: int = 0


class RequestListResponse(CamelModel):
    requests: List[UserRequestResponse]
    stats: RequestStats


class RequestDecisionResponse(CamelModel):
    user: UserResponse
    user_request: UserRequestResponse
    message: str


class DashboardStats(CamelModel):
    total_students: int
    total_teachers: int
    total_admins: int
    pending_requests: int
    total_classes: int
