"""
Identity API endpoints with session authentication.

Provides registration, login, logout, profile and team management.
The session lives in the database-backed Django session store and is
carried by the `sessionId` cookie.
"""
import logging
from typing import List
from uuid import UUID

from django.contrib.auth import authenticate, update_session_auth_hash
from django.http import HttpRequest
from ninja import Router

from apps.audit.audit_service import AuditAction, log_action
from apps.core.exceptions import AuthenticationError, DomainValidationError, PermissionDeniedError
from apps.core.schemas import MessageOut
from apps.organizations.models import OrganizationStatus
from .dtos import InvitationDTO, UserDTO
from .guards import end_session, require_auth, start_session
from .invite_service import InviteService, to_invitation_dto
from .models import UserRole
from .permissions import Permissions, authorize, require_organization
from .schemas import (
    AcceptInvitationSchema,
    ChangePasswordSchema,
    CustomerRegistrationSchema,
    InvitationCreateSchema,
    LoginSchema,
    ProfileUpdateSchema,
    TeamRoleUpdateSchema,
)
from .services import (
    change_password,
    get_user,
    list_users,
    register_customer,
    to_user_dto,
    update_profile,
    update_team_role,
)

logger = logging.getLogger(__name__)

router = Router(tags=["Auth"])
team_router = Router(tags=["Team"])


def _current_user(request: HttpRequest):
    ctx = require_auth(request)
    user = get_user(ctx.user_id)
    if user is None:
        raise AuthenticationError("Authentication required")
    return ctx, user


# =============================================================================
# Auth Endpoints
# =============================================================================

@router.post("/register/customer", response=UserDTO)
def register(request: HttpRequest, payload: CustomerRegistrationSchema):
    """
    **Public Endpoint**: Create a customer account inside an organization.

    The role is always `customer`, whatever the body says. The caller is
    logged in under a new session.
    """
    user = register_customer(payload)
    start_session(request, user)

    log_action(
        organization_id=user.organization_id,
        action=AuditAction.REGISTER_CUSTOMER,
        target_type="User",
        target_id=user.id,
        target_label=user.email,
        performed_by_id=user.id,
    )
    return to_user_dto(user)


@router.post("/login", response=UserDTO)
def login_user(request: HttpRequest, payload: LoginSchema):
    """
    Authenticate with email, password and (for tenant accounts) organization.

    Unknown emails and wrong passwords get the same 401 answer.
    """
    user = authenticate(
        request,
        email=payload.email,
        password=payload.password,
        organization_id=payload.organization_id,
    )

    if user is None:
        logger.info(f"Failed login for {payload.email}")
        raise AuthenticationError("Invalid email or password")

    if payload.organization_id is None and user.role != UserRole.SUPER_ADMIN:
        raise AuthenticationError("Organization required for login")

    if user.organization is not None and user.organization.status == OrganizationStatus.SUSPENDED:
        raise PermissionDeniedError("Organization is suspended")

    start_session(request, user)
    logger.info(f"User {user.id} logged in")

    log_action(
        organization_id=user.organization_id,
        action=AuditAction.LOGIN,
        target_type="User",
        target_id=user.id,
        target_label=user.email,
        performed_by_id=user.id,
    )
    return to_user_dto(user)


@router.post("/logout", response=MessageOut)
def logout_user(request: HttpRequest):
    """
    Destroy the server-side session and clear the cookie.
    """
    end_session(request)
    return {"message": "Logged out successfully"}


@router.get("/me", response=UserDTO)
def get_me(request: HttpRequest):
    """
    Get current authenticated user's profile, read fresh from the database.
    """
    _, user = _current_user(request)
    return to_user_dto(user)


@router.patch("/profile", response=UserDTO)
def patch_profile(request: HttpRequest, payload: ProfileUpdateSchema):
    _, user = _current_user(request)
    return to_user_dto(update_profile(user, payload.dict(exclude_unset=True)))


@router.post("/change-password", response=MessageOut)
def post_change_password(request: HttpRequest, payload: ChangePasswordSchema):
    """
    Change the caller's password. The session is re-keyed and stays valid.
    """
    ctx, user = _current_user(request)
    change_password(user, payload.current_password, payload.new_password)
    update_session_auth_hash(request, user)

    log_action(
        organization_id=ctx.organization_id,
        action=AuditAction.CHANGE_PASSWORD,
        target_type="User",
        target_id=user.id,
        target_label=user.email,
        performed_by_id=user.id,
    )
    return {"message": "Password updated successfully"}


@router.post("/invitations/accept", response=UserDTO)
def accept_invitation(request: HttpRequest, payload: AcceptInvitationSchema):
    """
    **Public Endpoint**: Create an account from an invitation token and log in.
    """
    user = InviteService.accept_invitation(
        token=payload.token,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
    )
    start_session(request, user)

    log_action(
        organization_id=user.organization_id,
        action=AuditAction.ACCEPT_INVITATION,
        target_type="User",
        target_id=user.id,
        target_label=user.email,
        performed_by_id=user.id,
    )
    return to_user_dto(user)


# =============================================================================
# Team Management Endpoints
# =============================================================================

@team_router.get("", response=List[UserDTO])
def list_team(request: HttpRequest):
    """
    List all users in the caller's organization.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.TEAM_VIEW)
    return list_users(org_id)


@team_router.patch("/{uuid:user_id}", response=UserDTO)
def update_team_member(request: HttpRequest, user_id: UUID, payload: TeamRoleUpdateSchema):
    """
    Change a team member's role. Owners only; roles are limited to
    `org_admin` and `customer`.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.TEAM_MANAGE_ROLES)

    user = update_team_role(org_id, ctx.user_id, user_id, payload.role)

    log_action(
        organization_id=org_id,
        action=AuditAction.CHANGE_ROLE,
        target_type="User",
        target_id=user.id,
        target_label=user.email,
        performed_by_id=ctx.user_id,
        context={"role": user.role},
    )
    return to_user_dto(user)


@team_router.get("/invitations", response=List[InvitationDTO])
def list_team_invitations(request: HttpRequest):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.TEAM_INVITE)
    return InviteService.list_invitations(org_id)


@team_router.post("/invitations", response={201: InvitationDTO})
def create_team_invitation(request: HttpRequest, payload: InvitationCreateSchema):
    """
    Invite someone to the caller's organization.

    The response carries the signed token to hand to the invitee.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.TEAM_INVITE)

    if payload.role not in (UserRole.ORG_ADMIN, UserRole.CUSTOMER):
        raise DomainValidationError("Invalid role")

    invitation = InviteService.create_invitation(
        organization_id=org_id,
        email=payload.email,
        role=payload.role,
        invited_by=get_user(ctx.user_id),
    )

    log_action(
        organization_id=org_id,
        action=AuditAction.INVITE_USER,
        target_type="OrganizationInvitation",
        target_id=invitation.id,
        target_label=invitation.email,
        performed_by_id=ctx.user_id,
        context={"role": invitation.role},
    )
    return 201, to_invitation_dto(invitation)
