from datetime import date
from typing import List, Optional
from uuid import UUID

from django.http import HttpRequest
from ninja import Router

from apps.audit.audit_service import AuditAction, log_action
from apps.core.exceptions import PermissionDeniedError
from apps.core.schemas import MessageOut
from apps.identity.guards import require_auth
from apps.identity.permissions import AuthContext, Permissions, authorize, require_organization
from . import services
from .models import Booking, BookingStatus, Quote
from .schemas import (
    BookingCreate,
    BookingUpdate,
    DashboardStatsOut,
    PaymentIn,
    PaymentOut,
    PriceQuoteIn,
    PriceQuoteOut,
    QuoteCreate,
    QuoteOut,
    QuoteUpdate,
    StaffBookingOut,
)

router = Router(tags=["Bookings"])
quotes_router = Router(tags=["Quotes"])
dashboard_router = Router(tags=["Dashboard"])

STAFF_ONLY_FIELDS = ('customer_id', 'dumpster_inventory_id', 'internal_notes')


def _authorize_booking_read(ctx: AuthContext, booking: Booking) -> None:
    """Staff see every booking of their tenant; customers only their own."""
    if ctx.has_permission(Permissions.BOOKING_VIEW_ALL):
        authorize(ctx, booking.organization_id, Permissions.BOOKING_VIEW_ALL)
        return
    authorize(ctx, booking.organization_id, Permissions.BOOKING_VIEW_OWN)
    if booking.customer_id != ctx.user_id:
        raise PermissionDeniedError("Access denied")


def _redact(ctx: AuthContext, bookings):
    if not ctx.has_permission(Permissions.BOOKING_VIEW_ALL):
        for booking in bookings:
            booking.internal_notes = None
    return bookings


# =============================================================================
# Bookings
# =============================================================================

@router.get("", response=List[StaffBookingOut])
def list_bookings(
    request: HttpRequest,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """
    Bookings of the acting organization, newest first.
    `start_date`/`end_date` select rentals overlapping that range (calendar view).
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)

    customer_id = None
    if ctx.has_permission(Permissions.BOOKING_VIEW_ALL):
        authorize(ctx, org_id, Permissions.BOOKING_VIEW_ALL)
    else:
        authorize(ctx, org_id, Permissions.BOOKING_VIEW_OWN)
        customer_id = ctx.user_id

    bookings = services.list_bookings(
        org_id,
        customer_id=customer_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return _redact(ctx, bookings)


@router.post("/quote", response=PriceQuoteOut)
def preview_price(request: HttpRequest, payload: PriceQuoteIn):
    """
    Server-computed price for a prospective booking. Nothing is stored.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.BOOKING_CREATE)
    return services.quote_price(org_id, payload.dict())


@router.post("", response={201: StaffBookingOut})
def create_booking(request: HttpRequest, payload: BookingCreate):
    """
    Create a booking. The price is computed on the server; a submitted
    `total_amount` must match it within the configured tolerance.

    Customers always book for themselves.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.BOOKING_CREATE)

    data = payload.dict()
    if ctx.has_permission(Permissions.BOOKING_MANAGE):
        customer_id = data.pop('customer_id')
    else:
        for field in STAFF_ONLY_FIELDS:
            data.pop(field, None)
        customer_id = ctx.user_id

    booking = services.create_booking(org_id, data, customer_id=customer_id)

    log_action(
        organization_id=org_id,
        action=AuditAction.CREATE_BOOKING,
        target_type="Booking",
        target_id=booking.id,
        target_label=booking.booking_number,
        performed_by_id=ctx.user_id,
        context={"total_amount": str(booking.total_amount)},
    )
    return 201, _redact(ctx, [booking])[0]


@router.get("/{uuid:booking_id}", response=StaffBookingOut)
def get_booking(request: HttpRequest, booking_id: UUID):
    ctx = require_auth(request)
    booking = services.get_booking(booking_id)
    _authorize_booking_read(ctx, booking)
    return _redact(ctx, [booking])[0]


@router.patch("/{uuid:booking_id}", response=StaffBookingOut)
def update_booking(request: HttpRequest, booking_id: UUID, payload: BookingUpdate):
    """
    Staff may change status (through the booking state machine), assign
    an inventory unit and edit contact details and notes.

    Customers may only cancel their own booking, within the cancellation
    notice.
    """
    ctx = require_auth(request)
    booking = services.get_booking(booking_id)
    data = payload.dict(exclude_unset=True)

    if not ctx.has_permission(Permissions.BOOKING_MANAGE):
        _authorize_booking_read(ctx, booking)
        if set(data) != {'status'} or data['status'] != BookingStatus.CANCELLED:
            raise PermissionDeniedError("Insufficient permissions")
        previous_status = booking.status
        booking = services.cancel_own_booking(booking, ctx.user_id)
        changed_from = previous_status
    else:
        authorize(ctx, booking.organization_id, Permissions.BOOKING_MANAGE)
        booking, changed_from = services.update_booking(booking.id, data)

    if changed_from is not None:
        log_action(
            organization_id=booking.organization_id,
            action=AuditAction.CHANGE_BOOKING_STATUS,
            target_type="Booking",
            target_id=booking.id,
            target_label=booking.booking_number,
            performed_by_id=ctx.user_id,
            context={"from": str(changed_from), "to": str(booking.status)},
        )
    else:
        log_action(
            organization_id=booking.organization_id,
            action=AuditAction.UPDATE_BOOKING,
            target_type="Booking",
            target_id=booking.id,
            target_label=booking.booking_number,
            performed_by_id=ctx.user_id,
            context={key: str(value) for key, value in data.items()},
        )
    return _redact(ctx, [booking])[0]


@router.delete("/{uuid:booking_id}", response=MessageOut)
def delete_booking(request: HttpRequest, booking_id: UUID):
    ctx = require_auth(request)
    booking = services.get_booking(booking_id)
    authorize(ctx, booking.organization_id, Permissions.BOOKING_MANAGE)

    org_id, number = booking.organization_id, booking.booking_number
    services.delete_booking(booking)

    log_action(
        organization_id=org_id,
        action=AuditAction.DELETE_BOOKING,
        target_type="Booking",
        target_id=booking_id,
        target_label=number,
        performed_by_id=ctx.user_id,
    )
    return {"message": "Booking deleted successfully"}


# =============================================================================
# Payments
# =============================================================================

@router.get("/{uuid:booking_id}/payments", response=List[PaymentOut])
def list_payments(request: HttpRequest, booking_id: UUID):
    ctx = require_auth(request)
    booking = services.get_booking(booking_id)
    authorize(ctx, booking.organization_id, Permissions.PAYMENT_VIEW)
    return services.list_payments(booking)


@router.post("/{uuid:booking_id}/payments", response={201: PaymentOut})
def record_payment(request: HttpRequest, booking_id: UUID, payload: PaymentIn):
    """
    Record a payment. Completed payments reduce `balance_due`; a payment
    larger than the balance is rejected.
    """
    ctx = require_auth(request)
    booking = services.get_booking(booking_id)
    authorize(ctx, booking.organization_id, Permissions.PAYMENT_RECORD)

    booking, payment = services.record_payment(booking.id, payload.dict())

    log_action(
        organization_id=booking.organization_id,
        action=AuditAction.RECORD_PAYMENT,
        target_type="Booking",
        target_id=booking.id,
        target_label=booking.booking_number,
        performed_by_id=ctx.user_id,
        context={
            "amount": str(payment.amount),
            "method": payment.payment_method,
            "status": payment.payment_status,
            "balance_due": str(booking.balance_due),
        },
    )
    return 201, payment


# =============================================================================
# Quotes
# =============================================================================

def _authorize_quote_read(ctx: AuthContext, quote: Quote) -> None:
    if ctx.has_permission(Permissions.QUOTE_VIEW_ALL):
        authorize(ctx, quote.organization_id, Permissions.QUOTE_VIEW_ALL)
        return
    authorize(ctx, quote.organization_id, Permissions.QUOTE_VIEW_OWN)
    if quote.customer_id != ctx.user_id:
        raise PermissionDeniedError("Access denied")


@quotes_router.get("", response=List[QuoteOut])
def list_quotes(request: HttpRequest, status: Optional[str] = None):
    ctx = require_auth(request)
    org_id = require_organization(ctx)

    customer_id = None
    if ctx.has_permission(Permissions.QUOTE_VIEW_ALL):
        authorize(ctx, org_id, Permissions.QUOTE_VIEW_ALL)
    else:
        authorize(ctx, org_id, Permissions.QUOTE_VIEW_OWN)
        customer_id = ctx.user_id
    return services.list_quotes(org_id, customer_id=customer_id, status=status)


@quotes_router.post("", response={201: QuoteOut})
def create_quote(request: HttpRequest, payload: QuoteCreate):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.QUOTE_CREATE)

    customer_id = None if ctx.has_permission(Permissions.QUOTE_MANAGE) else ctx.user_id
    return 201, services.create_quote(org_id, payload.dict(), customer_id=customer_id)


@quotes_router.get("/{uuid:quote_id}", response=QuoteOut)
def get_quote(request: HttpRequest, quote_id: UUID):
    ctx = require_auth(request)
    quote = services.get_quote(quote_id)
    _authorize_quote_read(ctx, quote)
    return quote


@quotes_router.patch("/{uuid:quote_id}", response=QuoteOut)
def update_quote(request: HttpRequest, quote_id: UUID, payload: QuoteUpdate):
    """
    Staff price and progress quotes: pending -> quoted/rejected,
    quoted -> accepted/rejected, accepted -> completed.
    Customers may accept or reject their own quoted estimate.
    """
    ctx = require_auth(request)
    quote = services.get_quote(quote_id)
    data = payload.dict(exclude_unset=True)

    if ctx.has_permission(Permissions.QUOTE_MANAGE):
        authorize(ctx, quote.organization_id, Permissions.QUOTE_MANAGE)
        return services.update_quote(quote, data)

    _authorize_quote_read(ctx, quote)
    if set(data) != {'status'}:
        raise PermissionDeniedError("Insufficient permissions")
    return services.respond_to_quote(quote, ctx.user_id, data['status'])


@quotes_router.delete("/{uuid:quote_id}", response=MessageOut)
def delete_quote(request: HttpRequest, quote_id: UUID):
    ctx = require_auth(request)
    quote = services.get_quote(quote_id)
    authorize(ctx, quote.organization_id, Permissions.QUOTE_MANAGE)
    services.delete_quote(quote)
    return {"message": "Quote deleted successfully"}


# =============================================================================
# Dashboard
# =============================================================================

@dashboard_router.get("/stats", response=DashboardStatsOut)
def get_dashboard_stats(request: HttpRequest):
    """Today's deliveries and pickups, available units and this month's revenue."""
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.DASHBOARD_VIEW)
    return services.dashboard_stats(org_id)
