"""Services for Fleet app: dumpster catalog and physical inventory."""
import logging
from typing import List, Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, RestrictedError

from apps.core.exceptions import ConflictError, DomainValidationError, NotFoundError
from .models import INVENTORY_TRANSITIONS, DumpsterInventory, DumpsterStatus, DumpsterType

logger = logging.getLogger(__name__)

# Fields that define what was rented; frozen once a booking references the type
CATALOG_IDENTITY_FIELDS = ('name', 'size_yards')


# =============================================================================
# Dumpster types
# =============================================================================

def list_dumpster_types(org_id: UUID, active_only: bool = False) -> List[DumpsterType]:
    queryset = DumpsterType.objects.filter(organization_id=org_id)
    if active_only:
        queryset = queryset.filter(is_active=True)
    return list(queryset)


def get_dumpster_type(type_id: UUID) -> DumpsterType:
    try:
        return DumpsterType.objects.get(id=type_id)
    except DumpsterType.DoesNotExist:
        raise NotFoundError("Dumpster type not found")


def create_dumpster_type(org_id: UUID, data: dict) -> DumpsterType:
    dumpster_type = DumpsterType.objects.create(organization_id=org_id, **data)
    logger.info(f"Created dumpster type {dumpster_type.id} for organization {org_id}")
    return dumpster_type


def update_dumpster_type(dumpster_type: DumpsterType, data: dict) -> DumpsterType:
    """
    Partial update. Rates, limits, description, image and the active flag
    may always change; name and size are locked once bookings exist.
    """
    changes_identity = any(
        field in data and data[field] is not None and data[field] != getattr(dumpster_type, field)
        for field in CATALOG_IDENTITY_FIELDS
    )
    if changes_identity and dumpster_type.bookings.exists():
        raise DomainValidationError(
            "Name and size cannot change once bookings reference this dumpster type"
        )

    for attr, value in data.items():
        if value is not None or attr in ('capacity_description', 'image_url'):
            setattr(dumpster_type, attr, value)
    dumpster_type.save()
    return dumpster_type


def delete_dumpster_type(dumpster_type: DumpsterType) -> None:
    try:
        with transaction.atomic():
            dumpster_type.delete()
    except (ProtectedError, RestrictedError):
        raise ConflictError("Dumpster type is in use by inventory or bookings")


# =============================================================================
# Inventory
# =============================================================================

def list_inventory(
    org_id: UUID,
    status: Optional[str] = None,
    dumpster_type_id: Optional[UUID] = None,
) -> List[DumpsterInventory]:
    queryset = DumpsterInventory.objects.filter(organization_id=org_id)
    if status:
        queryset = queryset.filter(status=status)
    if dumpster_type_id:
        queryset = queryset.filter(dumpster_type_id=dumpster_type_id)
    return list(queryset)


def get_unit(unit_id: UUID) -> DumpsterInventory:
    try:
        return DumpsterInventory.objects.get(id=unit_id)
    except DumpsterInventory.DoesNotExist:
        raise NotFoundError("Inventory unit not found")


def count_available_units(org_id: UUID) -> int:
    return DumpsterInventory.objects.filter(
        organization_id=org_id,
        status=DumpsterStatus.AVAILABLE,
    ).count()


def create_unit(org_id: UUID, data: dict) -> DumpsterInventory:
    dumpster_type = get_dumpster_type(data['dumpster_type_id'])
    if dumpster_type.organization_id != org_id:
        raise DomainValidationError("Dumpster type does not belong to this organization")

    try:
        with transaction.atomic():
            unit = DumpsterInventory.objects.create(organization_id=org_id, **data)
    except IntegrityError:
        raise ConflictError("Unit number already exists")
    return unit


def update_unit(unit: DumpsterInventory, data: dict) -> DumpsterInventory:
    """
    Partial update. Status changes go through the inventory state machine.
    """
    new_status = data.pop('status', None)
    if new_status is not None:
        INVENTORY_TRANSITIONS.check(unit.status, new_status)
        unit.status = new_status

    for attr, value in data.items():
        if value is not None or attr in ('current_location', 'notes'):
            setattr(unit, attr, value)

    try:
        with transaction.atomic():
            unit.save()
    except IntegrityError:
        raise ConflictError("Unit number already exists")
    return unit


def set_unit_status(unit: DumpsterInventory, status: str) -> DumpsterInventory:
    """Move a unit through the state machine; same-status writes are a no-op."""
    if INVENTORY_TRANSITIONS.check(unit.status, status):
        unit.status = status
        unit.save(update_fields=['status', 'updated_at'])
    return unit


def delete_unit(unit: DumpsterInventory) -> None:
    if unit.status == DumpsterStatus.RENTED:
        raise DomainValidationError("Cannot delete a unit that is currently rented")
    unit.delete()
