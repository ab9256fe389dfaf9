from typing import List
from uuid import UUID

from django.http import HttpRequest
from ninja import Router

from apps.audit.audit_service import AuditAction, log_action
from apps.core.exceptions import NotFoundError
from apps.core.schemas import MessageOut
from apps.identity.guards import require_auth
from apps.identity.permissions import Permissions, authorize, require_organization
from . import services
from .dtos import (
    BlackoutDateIn,
    BlackoutDateOut,
    OrganizationOut,
    PublicOrganizationOut,
    ServiceAreaCheckOut,
    ServiceAreaIn,
    ServiceAreaOut,
    SettingsOut,
    SettingsUpdate,
)

public_router = Router(tags=["Public"])
router = Router(tags=["Organization"])
settings_router = Router(tags=["Settings"])
service_areas_router = Router(tags=["Service Areas"])
blackout_dates_router = Router(tags=["Blackout Dates"])


# =============================================================================
# Public booking page
# =============================================================================

@public_router.get("/{slug}", response=PublicOrganizationOut)
def get_public_organization(request: HttpRequest, slug: str):
    """
    **Public Endpoint**: Branding for a tenant's booking page.

    404 when the slug is unknown.
    """
    return services.get_public_organization(slug)


@public_router.get("/{slug}/service-areas/{zip_code}", response=ServiceAreaCheckOut)
def check_service_area(request: HttpRequest, slug: str, zip_code: str):
    """
    **Public Endpoint**: Whether the tenant delivers to a ZIP code, and for how much.
    """
    return services.check_service_area(slug, zip_code)


# =============================================================================
# Caller's organization
# =============================================================================

@router.get("/current", response=OrganizationOut)
def get_current_organization(request: HttpRequest):
    ctx = require_auth(request)
    if ctx.acting_organization_id is None:
        raise NotFoundError("User has no organization")
    org = services.get_organization(ctx.acting_organization_id)
    authorize(ctx, org.id, Permissions.ORGANIZATION_VIEW)
    return org


# =============================================================================
# Settings
# =============================================================================

@settings_router.get("", response=SettingsOut)
def get_settings(request: HttpRequest):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.ORGANIZATION_VIEW)
    return services.get_settings(org_id)


@settings_router.patch("", response=SettingsOut)
def update_settings(request: HttpRequest, payload: SettingsUpdate):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.ORGANIZATION_MANAGE_SETTINGS)

    data = payload.dict(exclude_unset=True)
    settings = services.update_settings(org_id, data)

    log_action(
        organization_id=org_id,
        action=AuditAction.UPDATE_SETTINGS,
        target_type="OrganizationSettings",
        target_id=settings.id,
        performed_by_id=ctx.user_id,
        context={key: str(value) for key, value in data.items()},
    )
    return settings


# =============================================================================
# Service areas
# =============================================================================

@service_areas_router.get("", response=List[ServiceAreaOut])
def list_service_areas(request: HttpRequest):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.ORGANIZATION_VIEW)
    return services.list_service_areas(org_id)


@service_areas_router.post("", response={201: ServiceAreaOut})
def create_service_area(request: HttpRequest, payload: ServiceAreaIn):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.ORGANIZATION_MANAGE_SETTINGS)
    area = services.create_service_area(org_id, payload.zip_code, payload.delivery_fee, payload.is_active)
    return 201, area


@service_areas_router.delete("/{uuid:area_id}", response=MessageOut)
def delete_service_area(request: HttpRequest, area_id: UUID):
    ctx = require_auth(request)
    area = services.get_service_area(area_id)
    authorize(ctx, area.organization_id, Permissions.ORGANIZATION_MANAGE_SETTINGS)
    services.delete_service_area(area)
    return {"message": "Service area deleted successfully"}


# =============================================================================
# Blackout dates
# =============================================================================

@blackout_dates_router.get("", response=List[BlackoutDateOut])
def list_blackout_dates(request: HttpRequest):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.ORGANIZATION_VIEW)
    return services.list_blackout_dates(org_id)


@blackout_dates_router.post("", response={201: BlackoutDateOut})
def create_blackout_date(request: HttpRequest, payload: BlackoutDateIn):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.ORGANIZATION_MANAGE_SETTINGS)
    return 201, services.create_blackout_date(org_id, payload.date, payload.reason)


@blackout_dates_router.delete("/{uuid:blackout_id}", response=MessageOut)
def delete_blackout_date(request: HttpRequest, blackout_id: UUID):
    ctx = require_auth(request)
    blackout = services.get_blackout_date(blackout_id)
    authorize(ctx, blackout.organization_id, Permissions.ORGANIZATION_MANAGE_SETTINGS)
    services.delete_blackout_date(blackout)
    return {"message": "Blackout date deleted successfully"}
