from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from ninja import Schema
from pydantic import Field, field_validator

from apps.core.schemas import RequestSchema, normalize_email
from .models import BookingStatus, PaymentMethod, PaymentStatus, QuoteStatus


# =============================================================================
# Bookings
# =============================================================================

class BookingOut(Schema):
    id: UUID
    organization_id: UUID
    customer_id: Optional[UUID] = None
    dumpster_type_id: UUID
    dumpster_inventory_id: Optional[UUID] = None
    booking_number: str
    status: str
    source: str
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: str
    delivery_city: str
    delivery_state: str
    delivery_zip: str
    delivery_date: date
    delivery_time_slot: Optional[str] = None
    pickup_date: date
    pickup_time_slot: Optional[str] = None
    rental_days: int
    base_rate: Decimal
    daily_rate: Decimal
    delivery_fee: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    deposit_amount: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    special_instructions: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class StaffBookingOut(BookingOut):
    internal_notes: Optional[str] = None


class BookingCreate(RequestSchema):
    """
    Either `pickup_date` or `rental_days` is required; when both are sent
    they must agree. `total_amount` is optional: when sent it is checked
    against the server's own price.
    """
    dumpster_type_id: UUID
    customer_id: Optional[UUID] = None
    dumpster_inventory_id: Optional[UUID] = None
    customer_name: str = Field(min_length=1)
    customer_email: str
    customer_phone: str = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    delivery_city: str = Field(min_length=1)
    delivery_state: str = Field(min_length=1)
    delivery_zip: str = Field(min_length=5, max_length=10)
    delivery_date: date
    delivery_time_slot: Optional[str] = None
    pickup_date: Optional[date] = None
    pickup_time_slot: Optional[str] = None
    rental_days: Optional[int] = Field(default=None, ge=1)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    deposit_amount: Decimal = Field(default=Decimal('0'), ge=0, decimal_places=2)
    special_instructions: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator('customer_email')
    @classmethod
    def check_customer_email(cls, value: str) -> str:
        return normalize_email(value)


class BookingUpdate(RequestSchema):
    """
    Pricing and dates are fixed at creation. Send `dumpster_inventory_id: null`
    to unassign a unit.
    """
    status: Optional[BookingStatus] = None
    dumpster_inventory_id: Optional[UUID] = None
    customer_name: Optional[str] = Field(default=None, min_length=1)
    customer_phone: Optional[str] = Field(default=None, min_length=1)
    delivery_time_slot: Optional[str] = None
    pickup_time_slot: Optional[str] = None
    special_instructions: Optional[str] = None
    internal_notes: Optional[str] = None


class PriceQuoteIn(RequestSchema):
    dumpster_type_id: UUID
    delivery_zip: str = Field(min_length=5, max_length=10)
    delivery_date: Optional[date] = None
    pickup_date: Optional[date] = None
    rental_days: Optional[int] = Field(default=None, ge=1)


class PriceQuoteOut(Schema):
    base_rate: Decimal
    daily_rate: Decimal
    rental_days: int
    rental_charge: Decimal
    delivery_fee: Decimal
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal


# =============================================================================
# Payments
# =============================================================================

class PaymentOut(Schema):
    id: UUID
    booking_id: Optional[UUID] = None
    quote_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    amount: Decimal
    payment_method: str
    payment_status: str
    transaction_date: datetime
    notes: Optional[str] = None
    created_at: datetime


class PaymentIn(RequestSchema):
    amount: Decimal = Field(gt=0, decimal_places=2)
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.COMPLETED
    transaction_date: Optional[datetime] = None
    notes: Optional[str] = None


# =============================================================================
# Quotes
# =============================================================================

class QuoteOut(Schema):
    id: UUID
    organization_id: UUID
    customer_id: Optional[UUID] = None
    quote_number: str
    status: str
    customer_name: str
    customer_email: str
    customer_phone: str
    service_address: str
    service_city: str
    service_state: str
    service_zip: str
    item_description: str
    estimated_volume: Optional[str] = None
    photo_urls: List[str] = []
    quote_amount: Optional[Decimal] = None
    notes: Optional[str] = None
    preferred_date: Optional[date] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class QuoteCreate(RequestSchema):
    customer_name: str = Field(min_length=1)
    customer_email: str
    customer_phone: str = Field(min_length=1)
    service_address: str = Field(min_length=1)
    service_city: str = Field(min_length=1)
    service_state: str = Field(min_length=1)
    service_zip: str = Field(min_length=5, max_length=10)
    item_description: str = Field(min_length=1)
    estimated_volume: Optional[str] = None
    photo_urls: List[str] = []
    preferred_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator('customer_email')
    @classmethod
    def check_customer_email(cls, value: str) -> str:
        return normalize_email(value)


class QuoteUpdate(RequestSchema):
    status: Optional[QuoteStatus] = None
    quote_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    estimated_volume: Optional[str] = None
    notes: Optional[str] = None
    expires_at: Optional[datetime] = None


# =============================================================================
# Dashboard
# =============================================================================

class DashboardStatsOut(Schema):
    today_deliveries: int
    today_pickups: int
    available_units: int
    monthly_revenue: Decimal
