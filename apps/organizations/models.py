import uuid
from decimal import Decimal

from django.core.validators import RegexValidator
from django.db import models


slug_validator = RegexValidator(
    r'^[a-z0-9-]+$',
    "Slug must contain only lowercase letters, numbers, and hyphens",
)


class OrganizationStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    SUSPENDED = 'suspended', 'Suspended'
    TRIAL = 'trial', 'Trial'


class BillingCycle(models.TextChoices):
    MONTHLY = 'monthly', 'Monthly'
    QUARTERLY = 'quarterly', 'Quarterly'
    ANNUAL = 'annual', 'Annual'


class Organization(models.Model):
    """
    Represents a tenant (one dumpster-rental business).
    All data is isolated per organization.
    The slug is the public booking-page identity and never changes.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.CharField(max_length=100, unique=True, validators=[slug_validator])
    business_name = models.CharField(max_length=255)

    # Contact
    email = models.EmailField()
    phone = models.CharField(max_length=30)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=50)
    zip = models.CharField(max_length=10)
    website = models.URLField(blank=True, null=True)

    # Branding
    logo = models.URLField(blank=True, null=True)
    primary_color = models.CharField(max_length=20, blank=True, null=True)
    secondary_color = models.CharField(max_length=20, blank=True, null=True)

    service_area_radius = models.PositiveIntegerField(default=25)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0.0000'))
    stripe_account_id = models.CharField(max_length=255, blank=True, null=True)
    status = models.CharField(
        max_length=20,
        choices=OrganizationStatus.choices,
        default=OrganizationStatus.TRIAL
    )

    # Billing
    subscription_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    billing_cycle = models.CharField(
        max_length=20,
        choices=BillingCycle.choices,
        default=BillingCycle.MONTHLY
    )
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    next_billing_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class OrganizationSettings(models.Model):
    """Booking rules and notification toggles, one row per organization."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.OneToOneField(
        Organization,
        on_delete=models.CASCADE,
        related_name='booking_settings'
    )
    minimum_rental_days = models.PositiveIntegerField(default=7)
    turnaround_hours = models.PositiveIntegerField(default=24)
    lead_time_hours = models.PositiveIntegerField(default=48)
    require_customer_account = models.BooleanField(default=False)
    allow_same_day_pickup = models.BooleanField(default=False)
    booking_confirmation_email = models.BooleanField(default=True)
    reminder_email_hours_before = models.PositiveIntegerField(default=24)
    cancellation_hours_notice = models.PositiveIntegerField(default=48)
    cancellation_fee_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Settings for {self.organization_id}"


class ServiceArea(models.Model):
    """A ZIP code the organization delivers to, with its delivery fee."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='service_areas'
    )
    zip_code = models.CharField(max_length=10)
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['zip_code']
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'zip_code'],
                name='service_areas_org_zip_unique'
            ),
        ]

    def __str__(self):
        return f"{self.zip_code} (${self.delivery_fee})"


class BlackoutDate(models.Model):
    """A day on which the organization does not deliver."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='blackout_dates'
    )
    date = models.DateField()
    reason = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date']

    def __str__(self):
        return f"{self.date}: {self.reason}"
