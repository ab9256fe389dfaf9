import uuid
from decimal import Decimal

from django.db import models

from apps.core.state_machine import StateMachine


class BookingStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    DELIVERED = 'delivered', 'Delivered'
    PICKED_UP = 'picked_up', 'Picked Up'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class BookingSource(models.TextChoices):
    DASHBOARD = 'dashboard', 'Dashboard'
    API = 'api', 'External API'


class QuoteStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    QUOTED = 'quoted', 'Quoted'
    ACCEPTED = 'accepted', 'Accepted'
    REJECTED = 'rejected', 'Rejected'
    COMPLETED = 'completed', 'Completed'


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = 'credit_card', 'Credit Card'
    DEBIT_CARD = 'debit_card', 'Debit Card'
    ACH = 'ach', 'ACH'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'


BOOKING_TRANSITIONS = StateMachine('booking', {
    BookingStatus.PENDING: [BookingStatus.CONFIRMED, BookingStatus.CANCELLED],
    BookingStatus.CONFIRMED: [BookingStatus.DELIVERED, BookingStatus.CANCELLED],
    BookingStatus.DELIVERED: [BookingStatus.PICKED_UP, BookingStatus.CANCELLED],
    BookingStatus.PICKED_UP: [BookingStatus.COMPLETED, BookingStatus.CANCELLED],
    BookingStatus.COMPLETED: [],
    BookingStatus.CANCELLED: [],
})

QUOTE_TRANSITIONS = StateMachine('quote', {
    QuoteStatus.PENDING: [QuoteStatus.QUOTED, QuoteStatus.REJECTED],
    QuoteStatus.QUOTED: [QuoteStatus.ACCEPTED, QuoteStatus.REJECTED],
    QuoteStatus.ACCEPTED: [QuoteStatus.COMPLETED],
    QuoteStatus.REJECTED: [],
    QuoteStatus.COMPLETED: [],
})

# Bookings in these states may hold an inventory unit
ACTIVE_BOOKING_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.DELIVERED,
)


def generate_booking_number() -> str:
    return f"BK-{uuid.uuid4().hex[:10].upper()}"


def generate_quote_number() -> str:
    return f"Q-{uuid.uuid4().hex[:10].upper()}"


class Booking(models.Model):
    """
    A dumpster rental.

    Pricing fields are a snapshot taken at creation. They are never
    recomputed from the current rate card.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='bookings'
    )
    customer = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bookings'
    )
    dumpster_type = models.ForeignKey(
        'fleet.DumpsterType',
        on_delete=models.RESTRICT,
        related_name='bookings'
    )
    dumpster_inventory = models.ForeignKey(
        'fleet.DumpsterInventory',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bookings'
    )
    booking_number = models.CharField(max_length=20, unique=True, default=generate_booking_number)
    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING
    )
    source = models.CharField(
        max_length=20,
        choices=BookingSource.choices,
        default=BookingSource.DASHBOARD
    )

    # Customer contact snapshot
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=50)

    # Service details
    delivery_address = models.CharField(max_length=255)
    delivery_city = models.CharField(max_length=100)
    delivery_state = models.CharField(max_length=50)
    delivery_zip = models.CharField(max_length=10)
    delivery_date = models.DateField()
    delivery_time_slot = models.CharField(max_length=50, blank=True, null=True)
    pickup_date = models.DateField()
    pickup_time_slot = models.CharField(max_length=50, blank=True, null=True)
    rental_days = models.PositiveIntegerField()

    # Pricing snapshot
    base_rate = models.DecimalField(max_digits=10, decimal_places=2, help_text="Weekly rate at booking time")
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2)
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    deposit_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    balance_due = models.DecimalField(max_digits=10, decimal_places=2)

    special_instructions = models.TextField(blank=True, null=True)
    internal_notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'delivery_date']),
            models.Index(fields=['organization', 'pickup_date']),
            models.Index(fields=['organization', 'status']),
        ]

    def __str__(self):
        return f"{self.booking_number} ({self.status})"


class Quote(models.Model):
    """A junk-hauling estimate request."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='quotes'
    )
    customer = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='quotes'
    )
    quote_number = models.CharField(max_length=20, unique=True, default=generate_quote_number)
    status = models.CharField(
        max_length=20,
        choices=QuoteStatus.choices,
        default=QuoteStatus.PENDING
    )

    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=50)
    service_address = models.CharField(max_length=255)
    service_city = models.CharField(max_length=100)
    service_state = models.CharField(max_length=50)
    service_zip = models.CharField(max_length=10)

    item_description = models.TextField()
    estimated_volume = models.CharField(max_length=100, blank=True, null=True)
    photo_urls = models.JSONField(default=list, blank=True)
    quote_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    preferred_date = models.DateField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.quote_number} ({self.status})"


class Payment(models.Model):
    """
    Money received against a booking or a quote.
    Not wired to a payment processor; staff record payments by hand.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='payments'
    )
    booking = models.ForeignKey(
        Booking,
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name='payments'
    )
    quote = models.ForeignKey(
        Quote,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='payments'
    )
    customer = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.COMPLETED
    )
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True, null=True)
    stripe_charge_id = models.CharField(max_length=255, blank=True, null=True)
    transaction_date = models.DateTimeField()
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-transaction_date']

    def __str__(self):
        return f"{self.amount} via {self.payment_method} ({self.payment_status})"
