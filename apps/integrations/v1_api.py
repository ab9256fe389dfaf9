"""
External booking API, authenticated with an `X-API-Key` header.

Mounted at /api/v1/ as its own NinjaAPI so that it can answer with
`{"error": ...}` bodies and camelCase fields.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.http import HttpRequest
from ninja import NinjaAPI, Schema
from ninja.errors import AuthenticationError as NinjaAuthenticationError
from ninja.errors import ValidationError
from ninja.security import APIKeyHeader
from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from apps.audit.audit_service import AuditAction, log_action
from apps.bookings.models import BookingSource
from apps.bookings.services import create_booking
from apps.core.exceptions import DomainError
from apps.core.schemas import RequestSchema, normalize_email
from .services import authenticate_api_key

logger = logging.getLogger(__name__)


class ApiKeyAuth(APIKeyHeader):
    param_name = "X-API-Key"

    def authenticate(self, request, key):
        api_key = authenticate_api_key(key)
        if api_key is None:
            logger.warning(f"Rejected API key on {request.method} {request.path}")
        return api_key


api = NinjaAPI(
    title="HaulTracker External API",
    version="1.0.0",
    description="Booking intake for third-party integrations",
    urls_namespace="api-v1",
    auth=ApiKeyAuth(),
)


def validation_details(errors: list) -> list:
    details = []
    for error in errors:
        loc = [str(part) for part in error.get('loc', ()) if part not in ('body', 'payload')]
        message = str(error.get('msg', 'Invalid value'))
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        details.append({"field": ".".join(loc), "message": message})
    return details


@api.exception_handler(NinjaAuthenticationError)
def invalid_api_key_handler(request, exc):
    return api.create_response(request, {"error": "Invalid API key"}, status=401)


@api.exception_handler(ValidationError)
def validation_error_handler(request, exc: ValidationError):
    return api.create_response(
        request,
        {"error": "Validation failed", "details": validation_details(exc.errors)},
        status=400,
    )


@api.exception_handler(DomainError)
def domain_error_handler(request, exc: DomainError):
    return api.create_response(request, {"error": exc.message}, status=exc.status_code)


@api.exception_handler(Exception)
def unhandled_error_handler(request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.path}")
    return api.create_response(request, {"error": "Internal server error"}, status=500)


def calendar_date(value):
    """Accept `2025-06-01` as well as a full ISO-8601 timestamp."""
    if isinstance(value, str) and 'T' in value:
        return value.split('T', 1)[0]
    if isinstance(value, datetime):
        return value.date()
    return value


class ExternalBookingIn(RequestSchema):
    customer_name: str = Field(min_length=1)
    customer_email: str
    customer_phone: str = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    delivery_city: str = Field(min_length=1)
    delivery_state: str = Field(min_length=1)
    delivery_zip_code: str = Field(min_length=5, max_length=10)
    delivery_date: date
    pickup_date: date
    dumpster_type_id: UUID
    notes: Optional[str] = None

    @field_validator('customer_email')
    @classmethod
    def check_customer_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('delivery_date', 'pickup_date', mode='before')
    @classmethod
    def check_dates(cls, value):
        return calendar_date(value)


class ExternalBookingOut(Schema):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    booking_number: str
    status: str
    dumpster_type_id: UUID
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: str
    delivery_city: str
    delivery_state: str
    delivery_zip: str
    delivery_date: date
    pickup_date: date
    rental_days: int
    delivery_fee: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    balance_due: Decimal
    created_at: datetime


@api.post("/bookings", response={201: ExternalBookingOut}, by_alias=True)
def create_external_booking(request: HttpRequest, payload: ExternalBookingIn):
    """
    Create a pending booking in the API key's organization.

    The same booking rules and server-side pricing apply as for the
    dashboard.
    """
    api_key = request.auth
    org_id = api_key.organization_id

    booking = create_booking(
        org_id,
        {
            'dumpster_type_id': payload.dumpster_type_id,
            'customer_name': payload.customer_name,
            'customer_email': payload.customer_email,
            'customer_phone': payload.customer_phone,
            'delivery_address': payload.delivery_address,
            'delivery_city': payload.delivery_city,
            'delivery_state': payload.delivery_state,
            'delivery_zip': payload.delivery_zip_code,
            'delivery_date': payload.delivery_date,
            'pickup_date': payload.pickup_date,
            'special_instructions': payload.notes,
        },
        source=BookingSource.API,
    )

    log_action(
        organization_id=org_id,
        action=AuditAction.CREATE_BOOKING,
        target_type="Booking",
        target_id=booking.id,
        target_label=booking.booking_number,
        context={"api_key": api_key.prefix, "total_amount": str(booking.total_amount)},
    )
    return 201, booking
