"""
Unit tests for the resource pricing policy.
"""
from decimal import Decimal
from datetime import datetime, timedelta, timezone as dt_timezone
from django.test import SimpleTestCase

from apps.core.exceptions import InvariantViolation
from apps.resources.models import Resource, PricingModel, PricingUnit
from apps.resources import pricing


def _at(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=dt_timezone.utc)


def _resource(pricing_model=PricingModel.PER_UNIT, pricing_unit=None, rate='10.00'):
    return Resource(
        name="Test Resource",
        pricing_model=pricing_model,
        pricing_unit=pricing_unit,
        rate=Decimal(rate),
    )


class CalculateCostTest(SimpleTestCase):
    """Test calculate_cost for both pricing models."""

    def test_flat_fee_ignores_units(self):
        resource = _resource(PricingModel.FLAT_FEE, rate='40.00')
        self.assertEqual(pricing.calculate_cost(resource, 7), Decimal('40.00'))

    def test_per_unit_multiplies_rate(self):
        resource = _resource(pricing_unit=PricingUnit.MILE, rate='0.50')
        self.assertEqual(pricing.calculate_cost(resource, Decimal('40')), Decimal('20.00'))

    def test_per_unit_rounds_to_cents(self):
        resource = _resource(pricing_unit=PricingUnit.HOUR, rate='10.00')
        self.assertEqual(pricing.calculate_cost(resource, Decimal('1.666')), Decimal('16.66'))

    def test_per_unit_without_unit_is_invariant_violation(self):
        resource = _resource(pricing_unit=None)
        with self.assertRaises(InvariantViolation):
            pricing.calculate_cost(resource, 1)


class ReservationCostTest(SimpleTestCase):
    """Test calculate_reservation_cost estimates."""

    def test_hourly_ninety_minutes(self):
        resource = _resource(pricing_unit=PricingUnit.HOUR, rate='10.00')
        start = _at(2025, 6, 1, 9)
        self.assertEqual(
            pricing.calculate_reservation_cost(resource, start, start + timedelta(minutes=90)),
            Decimal('15.00'),
        )

    def test_daily_counts_calendar_days_inclusively(self):
        resource = _resource(pricing_unit=PricingUnit.DAY, rate='20.00')
        cost = pricing.calculate_reservation_cost(resource, _at(2025, 1, 1, 0, 0), _at(2025, 1, 2, 23, 59))
        self.assertEqual(cost, Decimal('40.00'))

    def test_daily_same_day_is_one_day(self):
        resource = _resource(pricing_unit=PricingUnit.DAY, rate='20.00')
        cost = pricing.calculate_reservation_cost(resource, _at(2025, 1, 1, 9), _at(2025, 1, 1, 17))
        self.assertEqual(cost, Decimal('20.00'))

    def test_distance_and_trip_collapse_to_one_unit(self):
        start, end = _at(2025, 1, 1, 9), _at(2025, 1, 3, 9)
        for unit in (PricingUnit.MILE, PricingUnit.KILOMETER, PricingUnit.TRIP):
            resource = _resource(pricing_unit=unit, rate='3.00')
            self.assertEqual(pricing.calculate_reservation_cost(resource, start, end), Decimal('3.00'))

    def test_flat_fee(self):
        resource = _resource(PricingModel.FLAT_FEE, rate='25.00')
        cost = pricing.calculate_reservation_cost(resource, _at(2025, 1, 1), _at(2025, 1, 5))
        self.assertEqual(cost, Decimal('25.00'))


class UsageCostTest(SimpleTestCase):
    """Test calculate_usage_cost from measured usage."""

    def test_hourly_uses_duration(self):
        resource = _resource(pricing_unit=PricingUnit.HOUR, rate='8.00')
        self.assertEqual(pricing.calculate_usage_cost(resource, Decimal('2.50'), None), Decimal('20.00'))

    def test_daily_rounds_hours_up_to_days(self):
        resource = _resource(pricing_unit=PricingUnit.DAY, rate='30.00')
        self.assertEqual(pricing.calculate_usage_cost(resource, Decimal('25.00'), None), Decimal('60.00'))
        self.assertEqual(pricing.calculate_usage_cost(resource, Decimal('24.00'), None), Decimal('30.00'))

    def test_distance_without_readings_costs_nothing(self):
        resource = _resource(pricing_unit=PricingUnit.KILOMETER, rate='0.75')
        self.assertEqual(pricing.calculate_usage_cost(resource, Decimal('3.00'), None), Decimal('0.00'))

    def test_trip_is_one_unit(self):
        resource = _resource(pricing_unit=PricingUnit.TRIP, rate='12.00')
        self.assertEqual(pricing.calculate_usage_cost(resource, Decimal('6.00'), Decimal('80')), Decimal('12.00'))


class TimeHelpersTest(SimpleTestCase):

    def test_hours_between_drops_partial_minutes(self):
        start = _at(2025, 6, 1, 10)
        end = start + timedelta(hours=2, minutes=30, seconds=59)
        self.assertEqual(pricing.hours_between(start, end), Decimal('2.50'))

    def test_inclusive_day_span(self):
        self.assertEqual(pricing.inclusive_day_span(_at(2025, 3, 1, 23), _at(2025, 3, 2, 1)), 2)
        self.assertEqual(pricing.inclusive_day_span(_at(2025, 3, 1, 8), _at(2025, 3, 1, 9)), 1)


class DisplayTest(SimpleTestCase):

    def test_format_price(self):
        self.assertEqual(pricing.format_price(_resource(pricing_unit=PricingUnit.HOUR, rate='12.5')), "$12.50/hr")
        self.assertEqual(pricing.format_price(_resource(PricingModel.FLAT_FEE, rate='1500')), "$1,500.00 flat")

    def test_format_cost_estimate(self):
        daily = _resource(pricing_unit=PricingUnit.DAY, rate='20.00')
        self.assertEqual(
            pricing.format_cost_estimate(daily, _at(2025, 1, 1, 9), _at(2025, 1, 2, 9)),
            "$40.00 (2 days)",
        )
        hourly = _resource(pricing_unit=PricingUnit.HOUR, rate='10.00')
        self.assertEqual(
            pricing.format_cost_estimate(hourly, _at(2025, 1, 1, 9), _at(2025, 1, 1, 10, 30)),
            "$15.00 (1.5 hours)",
        )
        self.assertEqual(
            pricing.format_cost_estimate(hourly, _at(2025, 1, 1, 9), _at(2025, 1, 1, 10)),
            "$10.00 (1 hour)",
        )
