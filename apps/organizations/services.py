"""
Services for Organizations app.
This is the public API for other apps to interact with organizations,
their booking settings, service areas and blackout dates.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from django.db import IntegrityError, transaction

from apps.core.exceptions import ConflictError, DomainValidationError, NotFoundError
from .dtos import OrganizationCreate, PublicOrganizationOut, ServiceAreaCheckOut
from .models import BlackoutDate, Organization, OrganizationSettings, ServiceArea

logger = logging.getLogger(__name__)


# =============================================================================
# Organizations
# =============================================================================

def get_organization(org_id) -> Organization:
    try:
        return Organization.objects.get(id=org_id)
    except Organization.DoesNotExist:
        raise NotFoundError("Organization not found")


def get_organization_by_slug(slug: str) -> Optional[Organization]:
    return Organization.objects.filter(slug=slug).first()


def css_variables(org: Organization) -> dict:
    """Brand colors as CSS custom properties for runtime theming."""
    variables = {}
    if org.primary_color:
        variables['--primary'] = org.primary_color
    if org.secondary_color:
        variables['--secondary'] = org.secondary_color
    return variables


def get_public_organization(slug: str) -> PublicOrganizationOut:
    org = get_organization_by_slug(slug)
    if org is None:
        raise NotFoundError("Organization not found")
    return PublicOrganizationOut(
        id=org.id,
        name=org.name,
        slug=org.slug,
        phone=org.phone,
        city=org.city,
        state=org.state,
        website=org.website,
        logo=org.logo,
        primary_color=org.primary_color,
        secondary_color=org.secondary_color,
        css_variables=css_variables(org),
    )


def list_organizations() -> List[Organization]:
    return list(Organization.objects.all())


def create_organization(payload: OrganizationCreate) -> Organization:
    """Create a tenant together with its default booking settings."""
    if get_organization_by_slug(payload.slug):
        raise ConflictError("Organization with this slug already exists")

    try:
        with transaction.atomic():
            org = Organization.objects.create(**payload.dict())
            OrganizationSettings.objects.create(organization=org)
    except IntegrityError:
        raise ConflictError("Organization with this slug already exists")

    logger.info(f"Created organization {org.id} ({org.slug})")
    return org


CLEARABLE_ORGANIZATION_FIELDS = (
    'website', 'logo', 'primary_color', 'secondary_color',
    'subscription_amount', 'trial_ends_at', 'next_billing_date',
)


def update_organization(org_id, data: dict) -> Organization:
    """
    Partial update. The slug is the public booking URL and cannot change.
    """
    org = get_organization(org_id)

    new_slug = data.pop('slug', None)
    if new_slug is not None and new_slug != org.slug:
        raise DomainValidationError("Organization slug cannot be changed")

    for attr, value in data.items():
        if value is not None or attr in CLEARABLE_ORGANIZATION_FIELDS:
            setattr(org, attr, value)
    org.save()
    return org


def delete_organization(org_id) -> None:
    org = get_organization(org_id)
    org.delete()
    logger.info(f"Deleted organization {org_id}")


# =============================================================================
# Settings
# =============================================================================

def get_settings(org_id) -> OrganizationSettings:
    get_organization(org_id)
    settings, _ = OrganizationSettings.objects.get_or_create(organization_id=org_id)
    return settings


def update_settings(org_id, data: dict) -> OrganizationSettings:
    settings = get_settings(org_id)
    for attr, value in data.items():
        if value is not None:
            setattr(settings, attr, value)
    settings.save()
    return settings


# =============================================================================
# Service areas
# =============================================================================

def list_service_areas(org_id) -> List[ServiceArea]:
    return list(ServiceArea.objects.filter(organization_id=org_id))


def get_service_area(area_id) -> ServiceArea:
    try:
        return ServiceArea.objects.get(id=area_id)
    except ServiceArea.DoesNotExist:
        raise NotFoundError("Service area not found")


def create_service_area(org_id, zip_code: str, delivery_fee: Decimal, is_active: bool = True) -> ServiceArea:
    try:
        with transaction.atomic():
            return ServiceArea.objects.create(
                organization_id=org_id,
                zip_code=zip_code.strip(),
                delivery_fee=delivery_fee,
                is_active=is_active,
            )
    except IntegrityError:
        raise ConflictError("Service area for this ZIP code already exists")


def delete_service_area(area: ServiceArea) -> None:
    area.delete()


def get_delivery_fee(org_id, zip_code: str) -> Optional[Decimal]:
    """Delivery fee for an active service area, or None when not served."""
    area = ServiceArea.objects.filter(
        organization_id=org_id,
        zip_code=(zip_code or "").strip(),
        is_active=True,
    ).first()
    return area.delivery_fee if area else None


def check_service_area(slug: str, zip_code: str) -> ServiceAreaCheckOut:
    org = get_organization_by_slug(slug)
    if org is None:
        raise NotFoundError("Organization not found")
    fee = get_delivery_fee(org.id, zip_code)
    return ServiceAreaCheckOut(zip_code=zip_code, serviced=fee is not None, delivery_fee=fee)


# =============================================================================
# Blackout dates
# =============================================================================

def list_blackout_dates(org_id) -> List[BlackoutDate]:
    return list(BlackoutDate.objects.filter(organization_id=org_id))


def get_blackout_date(blackout_id) -> BlackoutDate:
    try:
        return BlackoutDate.objects.get(id=blackout_id)
    except BlackoutDate.DoesNotExist:
        raise NotFoundError("Blackout date not found")


def create_blackout_date(org_id, day: date, reason: str) -> BlackoutDate:
    return BlackoutDate.objects.create(organization_id=org_id, date=day, reason=reason)


def delete_blackout_date(blackout: BlackoutDate) -> None:
    blackout.delete()


def is_blackout_date(org_id, day: date) -> bool:
    return BlackoutDate.objects.filter(organization_id=org_id, date=day).exists()
