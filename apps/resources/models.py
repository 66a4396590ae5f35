"""Models for Resources app."""
import uuid
from decimal import Decimal
from typing import Optional
from django.db import models


class ResourceType(models.TextChoices):
    VEHICLE = 'VEHICLE', 'Vehicle'
    EQUIPMENT = 'EQUIPMENT', 'Equipment'
    SPACE = 'SPACE', 'Space'
    OTHER = 'OTHER', 'Other'


class ResourceStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    INACTIVE = 'INACTIVE', 'Inactive'
    MAINTENANCE = 'MAINTENANCE', 'Under Maintenance'


class PricingModel(models.TextChoices):
    FLAT_FEE = 'FLAT_FEE', 'Flat Fee'
    PER_UNIT = 'PER_UNIT', 'Per Unit'


class PricingUnit(models.TextChoices):
    HOUR = 'HOUR', 'Hour'
    DAY = 'DAY', 'Day'
    MILE = 'MILE', 'Mile'
    KILOMETER = 'KILOMETER', 'Kilometer'
    TRIP = 'TRIP', 'Trip'


PRICING_UNIT_ABBREVIATIONS = {
    PricingUnit.HOUR: 'hr',
    PricingUnit.DAY: 'day',
    PricingUnit.MILE: 'mi',
    PricingUnit.KILOMETER: 'km',
    PricingUnit.TRIP: 'trip',
}

# Units measured by meter readings rather than the clock
DISTANCE_UNITS = (PricingUnit.MILE, PricingUnit.KILOMETER)


def can_be_reserved(status: str) -> bool:
    return status == ResourceStatus.ACTIVE


def unit_abbreviation(pricing_unit: Optional[str]) -> Optional[str]:
    if not pricing_unit:
        return None
    return PRICING_UNIT_ABBREVIATIONS[PricingUnit(pricing_unit)]


class Resource(models.Model):
    """
    A shareable community asset (vehicle, equipment, space).

    pricing_unit is set iff pricing_model is PER_UNIT.
    max_reservation_days: 0 = single day only, N = up to N calendar days,
    null = unlimited.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    resource_type = models.CharField(
        max_length=20,
        choices=ResourceType.choices,
        default=ResourceType.OTHER
    )
    status = models.CharField(
        max_length=20,
        choices=ResourceStatus.choices,
        default=ResourceStatus.ACTIVE
    )

    # Pricing
    pricing_model = models.CharField(
        max_length=20,
        choices=PricingModel.choices,
        default=PricingModel.FLAT_FEE
    )
    pricing_unit = models.CharField(
        max_length=20,
        choices=PricingUnit.choices,
        null=True, blank=True,
        help_text="Only for per-unit pricing"
    )
    rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    # Booking rules
    requires_approval = models.BooleanField(default=False)
    max_reservation_days = models.PositiveIntegerField(
        null=True, blank=True,
        help_text="0 = single day only, empty = unlimited"
    )
    advance_booking_days = models.PositiveIntegerField(
        null=True, blank=True,
        help_text="How many days ahead a booking may start (empty = no limit)"
    )

    created_by_id = models.UUIDField(null=True, blank=True)  # References User
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['status', 'resource_type']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(pricing_model=PricingModel.PER_UNIT, pricing_unit__isnull=False)
                    | models.Q(pricing_model=PricingModel.FLAT_FEE, pricing_unit__isnull=True)
                ),
                name='resource_pricing_unit_matches_model',
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def can_be_reserved(self) -> bool:
        return can_be_reserved(self.status)

    @property
    def allows_multi_day_booking(self) -> bool:
        return self.max_reservation_days is None or self.max_reservation_days > 0

    def is_valid_booking_duration(self, days: int) -> bool:
        """Check an inclusive calendar-day span against max_reservation_days."""
        if self.max_reservation_days is None:
            return True
        if self.max_reservation_days == 0:
            return days <= 1
        return days <= self.max_reservation_days
