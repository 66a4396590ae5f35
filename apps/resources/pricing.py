"""
Resource pricing policy.

Pure functions computing cost from a resource's pricing configuration
(pricing_model, pricing_unit, rate) and a quantity or time span. They
accept either a Resource model instance or a ResourceDTO.

Money is returned as Decimal quantized to cents (ROUND_HALF_UP).
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional, Union

from django.utils import timezone

from apps.core.exceptions import InvariantViolation

from .models import PricingModel, PricingUnit, DISTANCE_UNITS, unit_abbreviation

CENT = Decimal('0.01')
Number = Union[Decimal, int, float, str]


def quantize_money(value: Number) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _unit_of(resource) -> Optional[PricingUnit]:
    """Return the pricing unit, enforcing the per-unit/unit pairing."""
    if resource.pricing_model == PricingModel.FLAT_FEE:
        return None
    if not resource.pricing_unit:
        raise InvariantViolation(
            f"Per-unit resource {resource.id} has no pricing unit"
        )
    return PricingUnit(resource.pricing_unit)


# =============================================================================
# Time Helpers
# =============================================================================

def local_date(value: datetime) -> date:
    """Calendar date of a datetime in the configured time zone."""
    if timezone.is_aware(value):
        return timezone.localtime(value).date()
    return value.date()


def minutes_between(starts_at: datetime, ends_at: datetime) -> int:
    """Whole minutes elapsed (partial minutes are dropped)."""
    return int((ends_at - starts_at).total_seconds() // 60)


def hours_between(starts_at: datetime, ends_at: datetime) -> Decimal:
    """Elapsed time in hours, rounded to 2 decimals."""
    hours = Decimal(minutes_between(starts_at, ends_at)) / Decimal(60)
    return hours.quantize(CENT, rounding=ROUND_HALF_UP)


def inclusive_day_span(starts_at: datetime, ends_at: datetime) -> int:
    """Number of calendar days touched: same-day bookings span 1 day."""
    return (local_date(ends_at) - local_date(starts_at)).days + 1


def days_for_hours(duration_hours: Optional[Number]) -> int:
    """Billable days for a measured duration: ceil(hours / 24)."""
    hours = Decimal(str(duration_hours or 0))
    return int((hours / Decimal(24)).to_integral_value(rounding=ROUND_CEILING))


# =============================================================================
# Cost Calculation
# =============================================================================

def calculate_cost(resource, units: Number = 1) -> Decimal:
    """
    Flat fee ignores units and returns the rate.
    Per-unit returns rate × units.
    """
    rate = Decimal(str(resource.rate))
    if _unit_of(resource) is None:
        return quantize_money(rate)
    return quantize_money(rate * Decimal(str(units)))


def reservation_units(resource, starts_at: datetime, ends_at: datetime) -> Decimal:
    """
    Estimated billable units for a booking window.

    Distance and trip pricing collapse to one unit: actual distance is
    only known once usage is measured.
    """
    unit = _unit_of(resource)
    if unit == PricingUnit.HOUR:
        return Decimal(minutes_between(starts_at, ends_at)) / Decimal(60)
    if unit == PricingUnit.DAY:
        return Decimal(inclusive_day_span(starts_at, ends_at))
    return Decimal(1)


def calculate_reservation_cost(resource, starts_at: datetime, ends_at: datetime) -> Decimal:
    """Cost estimate for a reservation window."""
    return calculate_cost(resource, reservation_units(resource, starts_at, ends_at))


def usage_units(
    resource,
    duration_hours: Optional[Number],
    distance_units: Optional[Number],
) -> Decimal:
    """
    Measured billable units after check-in.

    Hours for hourly pricing, distance for mile/kilometer (0 if no
    readings), ceil(hours/24) for daily, 1 for trips.
    """
    unit = _unit_of(resource)
    if unit == PricingUnit.HOUR:
        return Decimal(str(duration_hours or 0))
    if unit == PricingUnit.DAY:
        return Decimal(days_for_hours(duration_hours))
    if unit in DISTANCE_UNITS:
        return Decimal(str(distance_units or 0))
    return Decimal(1)


def calculate_usage_cost(
    resource,
    duration_hours: Optional[Number],
    distance_units: Optional[Number],
) -> Decimal:
    """Cost of a completed usage log."""
    return calculate_cost(resource, usage_units(resource, duration_hours, distance_units))


# =============================================================================
# Display Helpers
# =============================================================================

def format_money(amount: Number) -> str:
    return f"${quantize_money(amount):,.2f}"


def format_price(resource) -> str:
    """e.g. "$12.50/hr" or "$40.00 flat"."""
    price = format_money(resource.rate)
    abbreviation = unit_abbreviation(_unit_of(resource))
    if abbreviation:
        return f"{price}/{abbreviation}"
    return f"{price} flat"


def format_cost_estimate(resource, starts_at: datetime, ends_at: datetime) -> str:
    """e.g. "$40.00 (2 days)", "$15.00 (1.5 hours)" or "$40.00 flat"."""
    cost = format_money(calculate_reservation_cost(resource, starts_at, ends_at))
    unit = _unit_of(resource)

    if unit is None:
        return f"{cost} flat"
    if unit == PricingUnit.HOUR:
        minutes = minutes_between(starts_at, ends_at)
        hours = round(minutes / 60, 1)
        label = 'hour' if minutes == 60 else 'hours'
        return f"{cost} ({hours:g} {label})"
    if unit == PricingUnit.DAY:
        days = inclusive_day_span(starts_at, ends_at)
        return f"{cost} ({days} {'day' if days == 1 else 'days'})"
    return cost
