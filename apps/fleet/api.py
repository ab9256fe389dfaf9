from typing import List, Optional
from uuid import UUID

from django.http import HttpRequest
from ninja import Router

from apps.core.schemas import MessageOut
from apps.identity.guards import require_auth
from apps.identity.permissions import Permissions, authorize, require_organization
from . import services
from .schemas import (
    DumpsterTypeIn,
    DumpsterTypeOut,
    DumpsterTypeUpdate,
    InventoryIn,
    InventoryOut,
    InventoryUpdate,
)

types_router = Router(tags=["Dumpster Types"])
inventory_router = Router(tags=["Inventory"])


# =============================================================================
# Catalog
# =============================================================================

@types_router.get("", response=List[DumpsterTypeOut])
def list_dumpster_types(request: HttpRequest, include_inactive: bool = False):
    """
    Catalog for the acting organization.
    Customers only ever see active types.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.CATALOG_VIEW)

    active_only = not (include_inactive and ctx.has_permission(Permissions.FLEET_MANAGE))
    return services.list_dumpster_types(org_id, active_only=active_only)


@types_router.get("/{uuid:type_id}", response=DumpsterTypeOut)
def get_dumpster_type(request: HttpRequest, type_id: UUID):
    ctx = require_auth(request)
    dumpster_type = services.get_dumpster_type(type_id)
    authorize(ctx, dumpster_type.organization_id, Permissions.CATALOG_VIEW)
    return dumpster_type


@types_router.post("", response={201: DumpsterTypeOut})
def create_dumpster_type(request: HttpRequest, payload: DumpsterTypeIn):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.FLEET_MANAGE)
    return 201, services.create_dumpster_type(org_id, payload.dict())


@types_router.patch("/{uuid:type_id}", response=DumpsterTypeOut)
def update_dumpster_type(request: HttpRequest, type_id: UUID, payload: DumpsterTypeUpdate):
    ctx = require_auth(request)
    dumpster_type = services.get_dumpster_type(type_id)
    authorize(ctx, dumpster_type.organization_id, Permissions.FLEET_MANAGE)
    return services.update_dumpster_type(dumpster_type, payload.dict(exclude_unset=True))


@types_router.delete("/{uuid:type_id}", response=MessageOut)
def delete_dumpster_type(request: HttpRequest, type_id: UUID):
    ctx = require_auth(request)
    dumpster_type = services.get_dumpster_type(type_id)
    authorize(ctx, dumpster_type.organization_id, Permissions.FLEET_MANAGE)
    services.delete_dumpster_type(dumpster_type)
    return {"message": "Dumpster type deleted successfully"}


# =============================================================================
# Inventory
# =============================================================================

@inventory_router.get("", response=List[InventoryOut])
def list_inventory(
    request: HttpRequest,
    status: Optional[str] = None,
    dumpster_type_id: Optional[UUID] = None,
):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.INVENTORY_VIEW)
    return services.list_inventory(org_id, status=status, dumpster_type_id=dumpster_type_id)


@inventory_router.get("/{uuid:unit_id}", response=InventoryOut)
def get_unit(request: HttpRequest, unit_id: UUID):
    ctx = require_auth(request)
    unit = services.get_unit(unit_id)
    authorize(ctx, unit.organization_id, Permissions.INVENTORY_VIEW)
    return unit


@inventory_router.post("", response={201: InventoryOut})
def create_unit(request: HttpRequest, payload: InventoryIn):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.FLEET_MANAGE)
    return 201, services.create_unit(org_id, payload.dict())


@inventory_router.patch("/{uuid:unit_id}", response=InventoryOut)
def update_unit(request: HttpRequest, unit_id: UUID, payload: InventoryUpdate):
    """
    Status changes follow: available -> rented/maintenance/retired,
    rented -> available/maintenance, maintenance -> available/retired.
    Retired units stay retired.
    """
    ctx = require_auth(request)
    unit = services.get_unit(unit_id)
    authorize(ctx, unit.organization_id, Permissions.FLEET_MANAGE)
    return services.update_unit(unit, payload.dict(exclude_unset=True))


@inventory_router.delete("/{uuid:unit_id}", response=MessageOut)
def delete_unit(request: HttpRequest, unit_id: UUID):
    ctx = require_auth(request)
    unit = services.get_unit(unit_id)
    authorize(ctx, unit.organization_id, Permissions.FLEET_MANAGE)
    services.delete_unit(unit)
    return {"message": "Inventory unit deleted successfully"}
