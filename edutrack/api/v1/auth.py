"""Login and self-service profile endpoints."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from edutrack.db import get_db
from edutrack.dependencies import get_role_policy, get_verified_identity, require_roles
from edutrack.errors import InvalidCredential, ValidationError
from edutrack.schemas.auth import LoginRequest, LoginResponse, ProfileUpdate, UserResponse, user_for_storage
from edutrack.services import onboarding
from edutrack.services.identity import VerifiedIdentity
from edutrack.services.onboarding import RolePolicy
from edutrack.services.policy import ALL_ROLES
from edutrack.services.principal import Principal, PrincipalResolver

router = APIRouter()

# pending accounts may still read and complete their profile
signed_in = require_roles(*ALL_ROLES, approved=False)


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    response: Response,
    identity: VerifiedIdentity = Depends(get_verified_identity),
    role_policy: RolePolicy = Depends(get_role_policy),
    db: Session = Depends(get_db),
):
    if payload.subject_id and payload.subject_id != identity.subject_id:
        raise InvalidCredential("Token subject does not match the request")
    email = (identity.email or payload.email or "").strip().lower()
    if not email:
        raise ValidationError.for_fields({"email": "required"}, "User ID and email are required")

    outcome = onboarding.login(db, identity, email, payload.display_name, role_policy)
    if outcome.created:
        response.status_code = status.HTTP_201_CREATED
    return LoginResponse(
        user=UserResponse.model_validate(outcome.user),
        user_for_storage=user_for_storage(outcome.user, payload.display_name),
        message=outcome.message,
    )


@router.get("/profile", response_model=LoginResponse)
def get_profile(principal: Principal = Depends(signed_in), db: Session = Depends(get_db)):
    user = PrincipalResolver(db).find_user(principal.external_id)
    return LoginResponse(
        user=UserResponse.model_validate(user),
        user_for_storage=user_for_storage(user),
        message="Profile retrieved successfully",
    )


@router.put("/profile", response_model=LoginResponse)
def update_profile(
    payload: ProfileUpdate,
    principal: Principal = Depends(signed_in),
    db: Session = Depends(get_db),
):
    user = PrincipalResolver(db).find_user(principal.external_id)
    user = onboarding.update_profile(db, user, payload)
    return LoginResponse(
        user=UserResponse.model_validate(user),
        user_for_storage=user_for_storage(user),
        message="Profile updated successfully",
    )
