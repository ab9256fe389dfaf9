import re
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from ninja import Schema
from pydantic import Field, field_validator

from apps.core.schemas import RequestSchema, normalize_email
from .models import BillingCycle, OrganizationStatus

SLUG_MESSAGE = "Slug must contain only lowercase letters, numbers, and hyphens"


def _check_slug(value: str) -> str:
    if not value:
        raise ValueError("Slug is required")
    if not re.fullmatch(r'[a-z0-9-]+', value):
        raise ValueError(SLUG_MESSAGE)
    return value


# =============================================================================
# Organization
# =============================================================================

class OrganizationOut(Schema):
    id: UUID
    name: str
    slug: str
    business_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip: str
    website: Optional[str] = None
    logo: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    service_area_radius: int
    tax_rate: Decimal
    stripe_account_id: Optional[str] = None
    status: str
    subscription_amount: Optional[Decimal] = None
    billing_cycle: str
    trial_ends_at: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PublicOrganizationOut(Schema):
    """What the public booking page may see. No tax, billing or owner data."""
    id: UUID
    name: str
    slug: str
    phone: str
    city: str
    state: str
    website: Optional[str] = None
    logo: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    css_variables: Dict[str, str] = {}


class OrganizationCreate(RequestSchema):
    name: str = Field(min_length=1)
    slug: str
    business_name: str = Field(min_length=1)
    email: str
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip: str = Field(min_length=1)
    website: Optional[str] = None
    logo: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    service_area_radius: int = Field(default=25, ge=0)
    tax_rate: Decimal = Field(default=Decimal('0'), ge=0, le=1, decimal_places=4)
    status: OrganizationStatus = OrganizationStatus.TRIAL
    subscription_amount: Optional[Decimal] = Field(default=None, ge=0)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    trial_ends_at: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    @field_validator('slug')
    @classmethod
    def check_slug(cls, value: str) -> str:
        return _check_slug(value)

    @field_validator('email')
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)


class OrganizationUpdate(RequestSchema):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = None
    business_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    service_area_radius: Optional[int] = Field(default=None, ge=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1, decimal_places=4)
    status: Optional[OrganizationStatus] = None
    subscription_amount: Optional[Decimal] = Field(default=None, ge=0)
    billing_cycle: Optional[BillingCycle] = None
    trial_ends_at: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    @field_validator('slug')
    @classmethod
    def check_slug(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_slug(value)

    @field_validator('email')
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else normalize_email(value)


# =============================================================================
# Settings
# =============================================================================

class SettingsOut(Schema):
    id: UUID
    organization_id: UUID
    minimum_rental_days: int
    turnaround_hours: int
    lead_time_hours: int
    require_customer_account: bool
    allow_same_day_pickup: bool
    booking_confirmation_email: bool
    reminder_email_hours_before: int
    cancellation_hours_notice: int
    cancellation_fee_percent: Decimal
    updated_at: datetime


class SettingsUpdate(RequestSchema):
    minimum_rental_days: Optional[int] = Field(default=None, ge=1)
    turnaround_hours: Optional[int] = Field(default=None, ge=0)
    lead_time_hours: Optional[int] = Field(default=None, ge=0)
    require_customer_account: Optional[bool] = None
    allow_same_day_pickup: Optional[bool] = None
    booking_confirmation_email: Optional[bool] = None
    reminder_email_hours_before: Optional[int] = Field(default=None, ge=0)
    cancellation_hours_notice: Optional[int] = Field(default=None, ge=0)
    cancellation_fee_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)


# =============================================================================
# Service areas & blackout dates
# =============================================================================

class ServiceAreaOut(Schema):
    id: UUID
    organization_id: UUID
    zip_code: str
    delivery_fee: Decimal
    is_active: bool
    created_at: datetime


class ServiceAreaIn(RequestSchema):
    zip_code: str = Field(min_length=5, max_length=10)
    delivery_fee: Decimal = Field(ge=0, decimal_places=2)
    is_active: bool = True


class ServiceAreaCheckOut(Schema):
    zip_code: str
    serviced: bool
    delivery_fee: Optional[Decimal] = None


class BlackoutDateOut(Schema):
    id: UUID
    organization_id: UUID
    date: date
    reason: str
    created_at: datetime


class BlackoutDateIn(RequestSchema):
    date: date
    reason: str = Field(min_length=1)
