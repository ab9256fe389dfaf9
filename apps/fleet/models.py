import uuid
from decimal import Decimal

from django.db import models

from apps.core.state_machine import StateMachine


class DumpsterStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    RENTED = 'rented', 'Rented'
    MAINTENANCE = 'maintenance', 'Maintenance'
    RETIRED = 'retired', 'Retired'


INVENTORY_TRANSITIONS = StateMachine('inventory', {
    DumpsterStatus.AVAILABLE: [DumpsterStatus.RENTED, DumpsterStatus.MAINTENANCE, DumpsterStatus.RETIRED],
    DumpsterStatus.RENTED: [DumpsterStatus.AVAILABLE, DumpsterStatus.MAINTENANCE],
    DumpsterStatus.MAINTENANCE: [DumpsterStatus.AVAILABLE, DumpsterStatus.RETIRED],
    DumpsterStatus.RETIRED: [],
})


class DumpsterType(models.Model):
    """
    A rentable size/SKU in an organization's catalog.
    Bookings copy its rates at creation, so later rate edits don't change them.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='dumpster_types'
    )
    name = models.CharField(max_length=100)
    size_yards = models.PositiveIntegerField()
    capacity_description = models.TextField(blank=True, null=True)
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2)
    weekly_rate = models.DecimalField(max_digits=10, decimal_places=2)
    weight_limit_tons = models.DecimalField(max_digits=5, decimal_places=2)
    overage_fee_per_ton = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    image_url = models.URLField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['size_yards']

    def __str__(self):
        return self.name


class DumpsterInventory(models.Model):
    """A physical unit of a DumpsterType."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='inventory'
    )
    dumpster_type = models.ForeignKey(
        DumpsterType,
        on_delete=models.RESTRICT,
        related_name='units'
    )
    unit_number = models.CharField(max_length=50)
    status = models.CharField(
        max_length=20,
        choices=DumpsterStatus.choices,
        default=DumpsterStatus.AVAILABLE
    )
    current_location = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['unit_number']
        verbose_name_plural = "Dumpster inventory"
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'unit_number'],
                name='inventory_org_unit_number_unique'
            ),
        ]

    def __str__(self):
        return f"{self.unit_number} ({self.status})"
