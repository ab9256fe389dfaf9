"""
Authorization policy.

Every handler resolves an AuthContext once (see guards.require_auth) and
asks `can_access` / `authorize` whether the caller may perform a
permission on a resource belonging to a given organization. The role to
permission mapping below is the single source of truth.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

from apps.core.exceptions import DomainValidationError, PermissionDeniedError
from .models import UserRole

logger = logging.getLogger(__name__)


# Define all available permissions here for reference
class Permissions:
    # Platform
    PLATFORM_MANAGE_ORGANIZATIONS = "platform.manage_organizations"

    # Organization
    ORGANIZATION_VIEW = "organization.view"
    ORGANIZATION_MANAGE_SETTINGS = "organization.manage_settings"
    DASHBOARD_VIEW = "organization.view_dashboard"

    # Team
    TEAM_VIEW = "team.view"
    TEAM_INVITE = "team.invite"
    TEAM_MANAGE_ROLES = "team.manage_roles"

    # Fleet
    CATALOG_VIEW = "fleet.view_catalog"
    INVENTORY_VIEW = "fleet.view_inventory"
    FLEET_MANAGE = "fleet.manage"

    # Bookings
    BOOKING_VIEW_ALL = "bookings.view_all"
    BOOKING_VIEW_OWN = "bookings.view_own"
    BOOKING_CREATE = "bookings.create"
    BOOKING_MANAGE = "bookings.manage"
    PAYMENT_VIEW = "bookings.view_payments"
    PAYMENT_RECORD = "bookings.record_payment"

    # Quotes
    QUOTE_VIEW_ALL = "quotes.view_all"
    QUOTE_VIEW_OWN = "quotes.view_own"
    QUOTE_CREATE = "quotes.create"
    QUOTE_MANAGE = "quotes.manage"

    # Integrations
    INTEGRATIONS_MANAGE = "integrations.manage"

    # Audit
    AUDIT_VIEW = "audit.view"


_STAFF_PERMISSIONS = [
    Permissions.ORGANIZATION_VIEW,
    Permissions.ORGANIZATION_MANAGE_SETTINGS,
    Permissions.DASHBOARD_VIEW,
    Permissions.TEAM_VIEW,
    Permissions.TEAM_INVITE,
    Permissions.CATALOG_VIEW,
    Permissions.INVENTORY_VIEW,
    Permissions.FLEET_MANAGE,
    Permissions.BOOKING_VIEW_ALL,
    Permissions.BOOKING_VIEW_OWN,
    Permissions.BOOKING_CREATE,
    Permissions.BOOKING_MANAGE,
    Permissions.PAYMENT_VIEW,
    Permissions.PAYMENT_RECORD,
    Permissions.QUOTE_VIEW_ALL,
    Permissions.QUOTE_VIEW_OWN,
    Permissions.QUOTE_CREATE,
    Permissions.QUOTE_MANAGE,
    Permissions.INTEGRATIONS_MANAGE,
    Permissions.AUDIT_VIEW,
]


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.SUPER_ADMIN: [
        Permissions.PLATFORM_MANAGE_ORGANIZATIONS,
        *_STAFF_PERMISSIONS,
        Permissions.TEAM_MANAGE_ROLES,
    ],
    UserRole.ORG_OWNER: [
        *_STAFF_PERMISSIONS,
        # Only owners promote or demote team members
        Permissions.TEAM_MANAGE_ROLES,
    ],
    UserRole.ORG_ADMIN: list(_STAFF_PERMISSIONS),
    UserRole.CUSTOMER: [
        Permissions.ORGANIZATION_VIEW,
        Permissions.CATALOG_VIEW,
        # Limited to the customer's own rows, enforced at the service level
        Permissions.BOOKING_VIEW_OWN,
        Permissions.BOOKING_CREATE,
        Permissions.QUOTE_VIEW_OWN,
        Permissions.QUOTE_CREATE,
    ],
}


def get_role_permissions(role: str) -> List[str]:
    return ROLE_PERMISSIONS.get(role, [])


@dataclass(frozen=True)
class AuthContext:
    """
    The authenticated caller, resolved once per request.

    `acting_organization_id` is the tenant the request operates in. It is
    the user's own organization, except for super admins who may pick one
    with the X-Organization-ID header.
    """
    user_id: UUID
    email: str
    role: str
    organization_id: Optional[UUID]
    acting_organization_id: Optional[UUID]

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def permissions(self) -> List[str]:
        return get_role_permissions(self.role)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


def can_access(ctx: AuthContext, resource_org_id: Optional[UUID], permission: str) -> bool:
    """
    Whether `ctx` may perform `permission` on a resource owned by
    `resource_org_id`. Super admins match any organization; everyone else
    must belong to it.
    """
    if not ctx.has_permission(permission):
        return False
    if ctx.is_super_admin:
        return True
    return resource_org_id is not None and ctx.organization_id == resource_org_id


def authorize(ctx: AuthContext, resource_org_id: Optional[UUID], permission: str) -> None:
    """Raise PermissionDeniedError unless `can_access` allows the action."""
    if can_access(ctx, resource_org_id, permission):
        return
    if ctx.has_permission(permission):
        logger.warning(
            f"Tenant isolation: user {ctx.user_id} denied {permission} on org {resource_org_id}"
        )
        raise PermissionDeniedError("Access denied")
    raise PermissionDeniedError("Insufficient permissions")


def require_permission(ctx: AuthContext, permission: str) -> None:
    """Role-only check for actions that are not tied to one resource."""
    if not ctx.has_permission(permission):
        raise PermissionDeniedError("Insufficient permissions")


def require_organization(ctx: AuthContext) -> UUID:
    """Return the tenant the request acts in, or fail if there is none."""
    if ctx.acting_organization_id is None:
        raise DomainValidationError("User has no organization")
    return ctx.acting_organization_id
