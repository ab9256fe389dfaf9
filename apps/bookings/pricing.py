"""
Server-side price computation for bookings.

rental charge = full weeks at the weekly rate, plus the remaining days at
the daily rate capped at one weekly rate. Delivery fee comes from the
organization's service area for the delivery ZIP. Tax is rounded half-up
to cents.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from django.conf import settings

from apps.core.exceptions import DomainValidationError
from apps.fleet.models import DumpsterType
from apps.organizations.models import Organization
from apps.organizations.services import get_delivery_fee

CENTS = Decimal('0.01')


@dataclass(frozen=True)
class PriceBreakdown:
    base_rate: Decimal
    daily_rate: Decimal
    rental_days: int
    rental_charge: Decimal
    delivery_fee: Decimal
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def rental_charge(weekly_rate: Decimal, daily_rate: Decimal, rental_days: int) -> Decimal:
    if rental_days < 1:
        raise DomainValidationError("Rental days must be at least 1")
    full_weeks, rest_days = divmod(rental_days, 7)
    leftover = min(rest_days * daily_rate, weekly_rate)
    return to_cents(full_weeks * weekly_rate + leftover)


def compute_price(
    organization: Organization,
    dumpster_type: DumpsterType,
    rental_days: int,
    delivery_zip: str,
) -> PriceBreakdown:
    """
    Price a prospective booking from the current rate card.

    Raises DomainValidationError when the organization does not deliver to
    `delivery_zip`.
    """
    delivery_fee = get_delivery_fee(organization.id, delivery_zip)
    if delivery_fee is None:
        raise DomainValidationError(f"ZIP code {delivery_zip} is outside the service area")

    charge = rental_charge(dumpster_type.weekly_rate, dumpster_type.daily_rate, rental_days)
    subtotal = to_cents(charge + delivery_fee)
    tax_amount = to_cents(subtotal * organization.tax_rate)

    return PriceBreakdown(
        base_rate=dumpster_type.weekly_rate,
        daily_rate=dumpster_type.daily_rate,
        rental_days=rental_days,
        rental_charge=charge,
        delivery_fee=to_cents(delivery_fee),
        subtotal=subtotal,
        tax_rate=organization.tax_rate,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
    )


def check_submitted_total(price: PriceBreakdown, submitted_total: Optional[Decimal]) -> None:
    """Reject a client-computed total that drifts from the server's."""
    if submitted_total is None:
        return
    tolerance = Decimal(str(settings.PRICE_TOLERANCE))
    if abs(Decimal(submitted_total) - price.total_amount) > tolerance:
        raise DomainValidationError(
            f"Submitted total {submitted_total} does not match computed total {price.total_amount}"
        )
