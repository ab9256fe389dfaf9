"""
Services for Bookings app.

Booking creation prices the rental on the server and persists that
snapshot. Status changes go through BOOKING_TRANSITIONS; inventory
assignment and payments lock the rows they change.
"""
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.core.exceptions import (
    ConflictError,
    DomainValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from apps.fleet.models import DumpsterInventory, DumpsterStatus
from apps.fleet.services import count_available_units, get_dumpster_type, set_unit_status
from apps.identity.models import User
from apps.integrations.models import WebhookEvent
from apps.integrations.webhooks import dispatch_event
from apps.organizations.models import OrganizationStatus
from apps.organizations.services import get_organization, get_settings, is_blackout_date
from .models import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    QUOTE_TRANSITIONS,
    Booking,
    BookingSource,
    BookingStatus,
    Payment,
    PaymentStatus,
    Quote,
    QuoteStatus,
)
from .pricing import PriceBreakdown, check_submitted_total, compute_price
from .schemas import BookingOut

logger = logging.getLogger(__name__)

# Units are only (un)assigned before they leave the yard
ASSIGNABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
RELEASE_STATUSES = (BookingStatus.PICKED_UP, BookingStatus.COMPLETED, BookingStatus.CANCELLED)


def booking_event_data(booking: Booking) -> dict:
    return BookingOut.from_orm(booking).dict()


def notify(booking: Booking, event: str) -> None:
    dispatch_event(booking.organization_id, event, booking_event_data(booking))


# =============================================================================
# Rental period and pricing
# =============================================================================

def resolve_rental_period(
    delivery_date: date,
    pickup_date: Optional[date],
    rental_days: Optional[int],
) -> Tuple[date, int]:
    """Return (pickup_date, rental_days) from whichever of the two was given."""
    if pickup_date is None and rental_days is None:
        raise DomainValidationError("Either pickup date or rental days is required")

    if pickup_date is not None:
        if pickup_date <= delivery_date:
            raise DomainValidationError("Pickup date must be after delivery date")
        days = (pickup_date - delivery_date).days
        if rental_days is not None and rental_days != days:
            raise DomainValidationError("Rental days do not match the pickup date")
        return pickup_date, days

    return delivery_date + timedelta(days=rental_days), rental_days


def quote_price(org_id: UUID, data: dict) -> PriceBreakdown:
    """Price preview for a prospective booking; nothing is stored."""
    organization = get_organization(org_id)
    dumpster_type = get_dumpster_type(data['dumpster_type_id'])
    if dumpster_type.organization_id != organization.id or not dumpster_type.is_active:
        raise DomainValidationError("Dumpster type is not available")

    rental_days = data.get('rental_days')
    if data.get('delivery_date') is not None:
        _, rental_days = resolve_rental_period(
            data['delivery_date'], data.get('pickup_date'), rental_days
        )
    if rental_days is None:
        raise DomainValidationError("Either pickup date or rental days is required")

    return compute_price(organization, dumpster_type, rental_days, data['delivery_zip'])


def delivery_starts_at(delivery_date: date) -> datetime:
    """Start of the delivery day in the current timezone."""
    return timezone.make_aware(datetime.combine(delivery_date, time.min))


def check_booking_rules(org_id: UUID, delivery_date: date, rental_days: int) -> None:
    settings = get_settings(org_id)

    if rental_days < settings.minimum_rental_days:
        raise DomainValidationError(
            f"Minimum rental period is {settings.minimum_rental_days} days"
        )

    if delivery_starts_at(delivery_date) < timezone.now() + timedelta(hours=settings.lead_time_hours):
        raise DomainValidationError(
            f"Deliveries must be booked at least {settings.lead_time_hours} hours in advance"
        )

    if is_blackout_date(org_id, delivery_date):
        raise DomainValidationError("Deliveries are not available on the selected date")


# =============================================================================
# Bookings
# =============================================================================

def list_bookings(
    org_id: UUID,
    customer_id: Optional[UUID] = None,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Booking]:
    """
    Bookings of an organization. `start_date`/`end_date` select bookings
    whose rental period overlaps the range, which is what the calendar shows.
    """
    queryset = Booking.objects.filter(organization_id=org_id)
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)
    if status:
        queryset = queryset.filter(status=status)
    if start_date:
        queryset = queryset.filter(pickup_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(delivery_date__lte=end_date)
    return list(queryset)


def get_booking(booking_id: UUID) -> Booking:
    try:
        return Booking.objects.get(id=booking_id)
    except Booking.DoesNotExist:
        raise NotFoundError("Booking not found")


def _resolve_customer(org_id: UUID, customer_id: Optional[UUID]) -> Optional[User]:
    if customer_id is None:
        return None
    customer = User.objects.filter(id=customer_id, organization_id=org_id).first()
    if customer is None:
        raise DomainValidationError("Customer does not belong to this organization")
    return customer


def _assign_unit(booking: Booking, unit_id: Optional[UUID]) -> None:
    """Attach or detach an inventory unit. Caller holds a transaction."""
    if booking.status not in ASSIGNABLE_STATUSES:
        raise DomainValidationError(
            f"Inventory cannot be reassigned on a {booking.status} booking"
        )

    if unit_id is None:
        booking.dumpster_inventory = None
        return

    unit = DumpsterInventory.objects.select_for_update().filter(id=unit_id).first()
    if unit is None:
        raise NotFoundError("Inventory unit not found")
    if unit.organization_id != booking.organization_id:
        raise DomainValidationError("Inventory unit does not belong to this organization")
    if unit.dumpster_type_id != booking.dumpster_type_id:
        raise DomainValidationError("Inventory unit is not of the booked dumpster type")
    if unit.status != DumpsterStatus.AVAILABLE:
        raise DomainValidationError("Inventory unit is not available")

    held = Booking.objects.filter(
        dumpster_inventory_id=unit.id,
        status__in=ACTIVE_BOOKING_STATUSES,
    ).exclude(id=booking.id).exists()
    if held:
        raise ConflictError("Inventory unit is already assigned to another booking")

    booking.dumpster_inventory = unit


def create_booking(
    org_id: UUID,
    data: dict,
    customer_id: Optional[UUID] = None,
    source: str = BookingSource.DASHBOARD,
) -> Booking:
    """
    Create a booking from caller-supplied details.

    The price is computed here; a submitted `total_amount` that differs by
    more than PRICE_TOLERANCE is rejected.
    """
    organization = get_organization(org_id)
    if organization.status == OrganizationStatus.SUSPENDED:
        raise PermissionDeniedError("Organization is suspended")

    dumpster_type = get_dumpster_type(data['dumpster_type_id'])
    if dumpster_type.organization_id != organization.id or not dumpster_type.is_active:
        raise DomainValidationError("Dumpster type is not available")

    pickup_date, rental_days = resolve_rental_period(
        data['delivery_date'], data.get('pickup_date'), data.get('rental_days')
    )
    check_booking_rules(org_id, data['delivery_date'], rental_days)

    price = compute_price(organization, dumpster_type, rental_days, data['delivery_zip'])
    check_submitted_total(price, data.get('total_amount'))

    deposit = data.get('deposit_amount') or Decimal('0')
    if deposit > price.total_amount:
        raise DomainValidationError("Deposit cannot exceed the total amount")

    customer = _resolve_customer(org_id, customer_id)

    with transaction.atomic():
        booking = Booking(
            organization=organization,
            customer=customer,
            dumpster_type=dumpster_type,
            status=BookingStatus.PENDING,
            source=source,
            customer_name=data['customer_name'],
            customer_email=data['customer_email'],
            customer_phone=data['customer_phone'],
            delivery_address=data['delivery_address'],
            delivery_city=data['delivery_city'],
            delivery_state=data['delivery_state'],
            delivery_zip=data['delivery_zip'].strip(),
            delivery_date=data['delivery_date'],
            delivery_time_slot=data.get('delivery_time_slot'),
            pickup_date=pickup_date,
            pickup_time_slot=data.get('pickup_time_slot'),
            rental_days=rental_days,
            base_rate=price.base_rate,
            daily_rate=price.daily_rate,
            delivery_fee=price.delivery_fee,
            subtotal=price.subtotal,
            tax_amount=price.tax_amount,
            total_amount=price.total_amount,
            deposit_amount=deposit,
            amount_paid=Decimal('0'),
            balance_due=price.total_amount,
            special_instructions=data.get('special_instructions'),
            internal_notes=data.get('internal_notes'),
        )
        if data.get('dumpster_inventory_id'):
            _assign_unit(booking, data['dumpster_inventory_id'])
        booking.save()
        notify(booking, WebhookEvent.BOOKING_CREATED)

    logger.info(
        f"Created booking {booking.booking_number} for org {org_id} "
        f"(total {booking.total_amount}, source {source})"
    )
    return booking


def _apply_status(booking: Booking, new_status: str) -> bool:
    """
    Move the booking and its unit through their state machines.
    Caller holds a transaction with the booking row locked.
    """
    if not BOOKING_TRANSITIONS.check(booking.status, new_status):
        return False

    unit = None
    if booking.dumpster_inventory_id:
        unit = DumpsterInventory.objects.select_for_update().get(id=booking.dumpster_inventory_id)

    if unit is not None:
        if new_status == BookingStatus.DELIVERED:
            set_unit_status(unit, DumpsterStatus.RENTED)
        elif new_status in RELEASE_STATUSES and unit.status == DumpsterStatus.RENTED:
            set_unit_status(unit, DumpsterStatus.AVAILABLE)

    logger.info(f"Booking {booking.booking_number}: {booking.status} -> {new_status}")
    booking.status = new_status
    return True


def update_booking(booking_id: UUID, data: dict) -> Tuple[Booking, Optional[str]]:
    """
    Partial update of a booking.

    Returns the booking and its previous status when the status changed,
    otherwise None in its place.
    """
    with transaction.atomic():
        try:
            booking = Booking.objects.select_for_update().get(id=booking_id)
        except Booking.DoesNotExist:
            raise NotFoundError("Booking not found")

        previous_status = booking.status

        if 'dumpster_inventory_id' in data:
            unit_id = data.pop('dumpster_inventory_id')
            if unit_id != booking.dumpster_inventory_id:
                _assign_unit(booking, unit_id)

        new_status = data.pop('status', None)
        status_changed = False
        if new_status is not None:
            status_changed = _apply_status(booking, new_status)

        for attr, value in data.items():
            if value is not None or attr in ('delivery_time_slot', 'pickup_time_slot',
                                             'special_instructions', 'internal_notes'):
                setattr(booking, attr, value)
        booking.save()

        if booking.status == BookingStatus.CANCELLED and status_changed:
            event = WebhookEvent.BOOKING_CANCELLED
        elif booking.status == BookingStatus.COMPLETED and status_changed:
            event = WebhookEvent.BOOKING_COMPLETED
        else:
            event = WebhookEvent.BOOKING_UPDATED
        notify(booking, event)

    return booking, previous_status if status_changed else None


def cancel_own_booking(booking: Booking, customer_id: UUID) -> Booking:
    """
    Customer self-service cancellation, subject to the organization's
    cancellation notice.
    """
    if booking.customer_id != customer_id:
        raise PermissionDeniedError("Access denied")

    settings = get_settings(booking.organization_id)
    cutoff = timezone.now() + timedelta(hours=settings.cancellation_hours_notice)
    if delivery_starts_at(booking.delivery_date) < cutoff:
        raise DomainValidationError(
            f"Bookings must be cancelled at least {settings.cancellation_hours_notice} hours before delivery"
        )

    booking, _ = update_booking(booking.id, {'status': BookingStatus.CANCELLED})
    return booking


def delete_booking(booking: Booking) -> None:
    if booking.status == BookingStatus.DELIVERED:
        raise DomainValidationError("Cannot delete a booking while its dumpster is on site")
    if booking.payments.exists():
        raise DomainValidationError("Cannot delete a booking with recorded payments")
    booking.delete()
    logger.info(f"Deleted booking {booking.booking_number}")


# =============================================================================
# Payments
# =============================================================================

def list_payments(booking: Booking) -> List[Payment]:
    return list(booking.payments.all())


def record_payment(booking_id: UUID, data: dict) -> Tuple[Booking, Payment]:
    """
    Record a payment against a booking. Completed payments reduce the
    balance in the same transaction; overpayment is rejected.
    """
    with transaction.atomic():
        try:
            booking = Booking.objects.select_for_update().get(id=booking_id)
        except Booking.DoesNotExist:
            raise NotFoundError("Booking not found")

        if booking.status == BookingStatus.CANCELLED:
            raise DomainValidationError("Cannot record a payment on a cancelled booking")

        amount = data['amount']
        payment_status = data.get('payment_status') or PaymentStatus.COMPLETED
        if payment_status == PaymentStatus.COMPLETED and amount > booking.balance_due:
            raise DomainValidationError(
                f"Payment of {amount} exceeds balance due of {booking.balance_due}"
            )

        payment = Payment.objects.create(
            organization_id=booking.organization_id,
            booking=booking,
            customer_id=booking.customer_id,
            amount=amount,
            payment_method=data['payment_method'],
            payment_status=payment_status,
            transaction_date=data.get('transaction_date') or timezone.now(),
            notes=data.get('notes'),
        )

        if payment_status == PaymentStatus.COMPLETED:
            booking.amount_paid += amount
            booking.balance_due = booking.total_amount - booking.amount_paid
            booking.save(update_fields=['amount_paid', 'balance_due', 'updated_at'])

    logger.info(
        f"Recorded {payment_status} payment of {amount} on booking {booking.booking_number}"
    )
    return booking, payment


# =============================================================================
# Quotes
# =============================================================================

def list_quotes(org_id: UUID, customer_id: Optional[UUID] = None, status: Optional[str] = None) -> List[Quote]:
    queryset = Quote.objects.filter(organization_id=org_id)
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)
    if status:
        queryset = queryset.filter(status=status)
    return list(queryset)


def get_quote(quote_id: UUID) -> Quote:
    try:
        return Quote.objects.get(id=quote_id)
    except Quote.DoesNotExist:
        raise NotFoundError("Quote not found")


def create_quote(org_id: UUID, data: dict, customer_id: Optional[UUID] = None) -> Quote:
    get_organization(org_id)
    customer = _resolve_customer(org_id, customer_id)
    quote = Quote.objects.create(organization_id=org_id, customer=customer, **data)
    logger.info(f"Created quote {quote.quote_number} for org {org_id}")
    return quote


def update_quote(quote: Quote, data: dict) -> Quote:
    new_status = data.pop('status', None)

    for attr, value in data.items():
        if value is not None or attr in ('notes', 'estimated_volume', 'expires_at'):
            setattr(quote, attr, value)

    if new_status is not None:
        if new_status == QuoteStatus.QUOTED and quote.quote_amount is None:
            raise DomainValidationError("A quote amount is required before quoting")
        if QUOTE_TRANSITIONS.check(quote.status, new_status):
            logger.info(f"Quote {quote.quote_number}: {quote.status} -> {new_status}")
            quote.status = new_status

    quote.save()
    return quote


def respond_to_quote(quote: Quote, customer_id: UUID, status: str) -> Quote:
    """A customer accepts or rejects a quote they requested."""
    if quote.customer_id != customer_id:
        raise PermissionDeniedError("Access denied")
    if status not in (QuoteStatus.ACCEPTED, QuoteStatus.REJECTED):
        raise PermissionDeniedError("Insufficient permissions")
    if quote.expires_at and quote.expires_at < timezone.now() and status == QuoteStatus.ACCEPTED:
        raise DomainValidationError("Quote has expired")
    return update_quote(quote, {'status': status})


def delete_quote(quote: Quote) -> None:
    quote.delete()


# =============================================================================
# Dashboard
# =============================================================================

def dashboard_stats(org_id: UUID, today: Optional[date] = None) -> dict:
    today = today or timezone.localdate()
    live = Booking.objects.filter(organization_id=org_id).exclude(status=BookingStatus.CANCELLED)

    revenue = Payment.objects.filter(
        organization_id=org_id,
        payment_status=PaymentStatus.COMPLETED,
        transaction_date__year=today.year,
        transaction_date__month=today.month,
    ).aggregate(total=Sum('amount'))['total']

    return {
        'today_deliveries': live.filter(delivery_date=today).count(),
        'today_pickups': live.filter(pickup_date=today).count(),
        'available_units': count_available_units(org_id),
        'monthly_revenue': revenue or Decimal('0.00'),
    }
