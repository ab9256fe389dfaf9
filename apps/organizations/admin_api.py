"""
Platform console endpoints. Super admins only.
"""
from typing import List
from uuid import UUID

from django.http import HttpRequest
from ninja import Router

from apps.audit.audit_service import AuditAction, log_action
from apps.core.exceptions import DomainValidationError
from apps.core.schemas import MessageOut
from apps.identity.dtos import InvitationDTO, ProvisionedUserDTO, UserDTO
from apps.identity.guards import require_auth
from apps.identity.invite_service import InviteService, to_invitation_dto
from apps.identity.models import UserRole
from apps.identity.permissions import Permissions, require_permission
from apps.identity.schemas import InvitationCreateSchema, ProvisionUserSchema
from apps.identity.services import (
    create_user,
    generate_temporary_password,
    get_user,
    list_users,
    to_user_dto,
)
from . import services
from .dtos import OrganizationCreate, OrganizationOut, OrganizationUpdate

router = Router(tags=["Admin"])

PROVISIONABLE_ROLES = (UserRole.ORG_OWNER, UserRole.ORG_ADMIN, UserRole.CUSTOMER)


def _require_platform_admin(request: HttpRequest):
    ctx = require_auth(request)
    require_permission(ctx, Permissions.PLATFORM_MANAGE_ORGANIZATIONS)
    return ctx


@router.get("", response=List[OrganizationOut])
def list_organizations(request: HttpRequest):
    _require_platform_admin(request)
    return services.list_organizations()


@router.post("", response={201: OrganizationOut})
def create_organization(request: HttpRequest, payload: OrganizationCreate):
    """
    Create a tenant. Default booking settings are created with it.
    """
    ctx = _require_platform_admin(request)
    org = services.create_organization(payload)

    log_action(
        organization_id=org.id,
        action=AuditAction.CREATE_ORGANIZATION,
        target_type="Organization",
        target_id=org.id,
        target_label=org.slug,
        performed_by_id=ctx.user_id,
    )
    return 201, org


@router.get("/{uuid:org_id}", response=OrganizationOut)
def get_organization(request: HttpRequest, org_id: UUID):
    _require_platform_admin(request)
    return services.get_organization(org_id)


@router.patch("/{uuid:org_id}", response=OrganizationOut)
def update_organization(request: HttpRequest, org_id: UUID, payload: OrganizationUpdate):
    ctx = _require_platform_admin(request)
    data = payload.dict(exclude_unset=True)
    org = services.update_organization(org_id, dict(data))

    log_action(
        organization_id=org.id,
        action=AuditAction.UPDATE_ORGANIZATION,
        target_type="Organization",
        target_id=org.id,
        target_label=org.slug,
        performed_by_id=ctx.user_id,
        context={key: str(value) for key, value in data.items()},
    )
    return org


@router.delete("/{uuid:org_id}", response=MessageOut)
def delete_organization(request: HttpRequest, org_id: UUID):
    ctx = _require_platform_admin(request)
    org = services.get_organization(org_id)
    slug = org.slug
    services.delete_organization(org_id)

    log_action(
        organization_id=None,
        action=AuditAction.DELETE_ORGANIZATION,
        target_type="Organization",
        target_id=org_id,
        target_label=slug,
        performed_by_id=ctx.user_id,
    )
    return {"message": "Organization deleted successfully"}


# =============================================================================
# Tenant users
# =============================================================================

@router.get("/{uuid:org_id}/users", response=List[UserDTO])
def list_organization_users(request: HttpRequest, org_id: UUID):
    _require_platform_admin(request)
    services.get_organization(org_id)
    return list_users(org_id)


@router.post("/{uuid:org_id}/users", response={201: ProvisionedUserDTO})
def create_organization_user(request: HttpRequest, org_id: UUID, payload: ProvisionUserSchema):
    """
    Create an account in a tenant with a random temporary password.

    The password is returned once, in this response only.
    """
    ctx = _require_platform_admin(request)
    services.get_organization(org_id)

    if payload.role not in PROVISIONABLE_ROLES:
        raise DomainValidationError("Invalid role")

    temporary_password = generate_temporary_password()
    user = create_user(
        email=payload.email,
        password=temporary_password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone or "",
        role=payload.role,
        organization_id=org_id,
    )

    log_action(
        organization_id=org_id,
        action=AuditAction.PROVISION_USER,
        target_type="User",
        target_id=user.id,
        target_label=user.email,
        performed_by_id=ctx.user_id,
        context={"role": user.role},
    )
    return 201, ProvisionedUserDTO(user=to_user_dto(user), temporary_password=temporary_password)


@router.post("/{uuid:org_id}/invitations", response={201: InvitationDTO})
def create_organization_invitation(request: HttpRequest, org_id: UUID, payload: InvitationCreateSchema):
    ctx = _require_platform_admin(request)
    services.get_organization(org_id)

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
