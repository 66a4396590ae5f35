"""
Unit tests for check-out, check-in and verification.
"""
from decimal import Decimal
from datetime import datetime, timedelta, timezone as dt_timezone
from uuid import uuid4
from django.core import mail
from django.test import TestCase, override_settings

from apps.core.results import Rejection
from apps.identity.models import User, UserStatus
from apps.resources.models import Resource, PricingModel, PricingUnit
from apps.reservations.models import Reservation, ReservationStatus
from apps.usage.models import UsageLog, UsageLogStatus
from apps.usage import services


def _at(hour, minute=0, day=1):
    return datetime(2025, 6, day, hour, minute, tzinfo=dt_timezone.utc)


class UsageTestCase(TestCase):

    def setUp(self):
        self.member_id = uuid4()
        self.resource = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        self.reservation = self.make_reservation()

    def make_reservation(self, status=ReservationStatus.CONFIRMED, user_id=None, resource=None):
        return Reservation.objects.create(
            resource_id=(resource or self.resource).id,
            user_id=user_id or self.member_id,
            starts_at=_at(9),
            ends_at=_at(17),
            status=status,
        )

    def check_out(self, now=None, reservation=None, user_id=None, start_reading=None):
        reservation = reservation or self.reservation
        return services.check_out(
            reservation.id,
            user_id=user_id or reservation.user_id,
            start_reading=start_reading,
            now=now or _at(9),
        )


class CheckOutTest(UsageTestCase):

    def test_check_out_creates_log_and_moves_reservation(self):
        result = self.check_out(start_reading=Decimal('1000'))
        self.assertTrue(result.success)
        self.assertEqual(result.data.status, UsageLogStatus.CHECKED_OUT)
        self.assertEqual(result.data.checked_out_at, _at(9))
        self.assertEqual(result.data.resource_name, "Pickup Truck")
        self.assertFalse(result.data.is_billable)

        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, ReservationStatus.CHECKED_OUT)

    def test_window_opens_thirty_minutes_early(self):
        self.assertEqual(self.check_out(now=_at(8, 29)).reason, Rejection.OUTSIDE_CHECKOUT_WINDOW)
        self.assertTrue(self.check_out(now=_at(8, 30)).success)

    def test_window_closes_at_end(self):
        result = self.check_out(now=_at(17))
        self.assertEqual(result.reason, Rejection.OUTSIDE_CHECKOUT_WINDOW)
        self.assertEqual(UsageLog.objects.count(), 0)

    @override_settings(USAGE_CHECKOUT_GRACE_MINUTES=60)
    def test_grace_is_configurable(self):
        self.assertTrue(self.check_out(now=_at(8)).success)

    def test_only_owner_can_check_out(self):
        result = self.check_out(user_id=uuid4())
        self.assertEqual(result.reason, Rejection.NOT_RESERVATION_OWNER)

    def test_pending_reservation_cannot_be_checked_out(self):
        pending = self.make_reservation(status=ReservationStatus.PENDING, resource=Resource.objects.create(
            name="Trailer", rate=Decimal('15.00')
        ))
        result = self.check_out(reservation=pending)
        self.assertEqual(result.reason, Rejection.INVALID_TRANSITION)

    def test_second_check_out_is_rejected(self):
        self.assertTrue(self.check_out().success)
        again = self.check_out(now=_at(10))
        self.assertFalse(again.success)
        self.assertEqual(again.reason, Rejection.ALREADY_CHECKED_OUT)
        self.assertEqual(UsageLog.objects.filter(reservation_id=self.reservation.id).count(), 1)

    def test_missing_reservation_raises(self):
        with self.assertRaises(Reservation.DoesNotExist):
            services.check_out(uuid4(), self.member_id, now=_at(9))


class CheckInTest(UsageTestCase):

    def test_mileage_is_measured_and_priced(self):
        usage = self.check_out(now=_at(8, 40), start_reading=Decimal('1000')).data
        result = services.check_in(usage.id, checked_in_at=_at(11, 30), end_reading=Decimal('1040'))

        self.assertTrue(result.success)
        log = result.data
        self.assertEqual(log.status, UsageLogStatus.COMPLETED)
        self.assertEqual(log.duration_hours, Decimal('2.83'))
        self.assertEqual(log.distance_units, Decimal('40.00'))
        self.assertEqual(log.calculated_cost, Decimal('20.00'))
        self.assertEqual(log.formatted_duration, "2h 50m")
        self.assertEqual(log.formatted_distance, "40.0 mi")
        self.assertTrue(log.is_billable)

        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, ReservationStatus.COMPLETED)

    def test_missing_readings_bill_zero_distance(self):
        usage = self.check_out().data
        result = services.check_in(usage.id, checked_in_at=_at(10))
        self.assertIsNone(result.data.distance_units)
        self.assertEqual(result.data.calculated_cost, Decimal('0.00'))

    def test_hourly_cost(self):
        self.resource.pricing_unit = PricingUnit.HOUR
        self.resource.rate = Decimal('10.00')
        self.resource.save()
        usage = self.check_out().data
        result = services.check_in(usage.id, checked_in_at=_at(11, 30))
        self.assertEqual(result.data.duration_hours, Decimal('2.50'))
        self.assertEqual(result.data.calculated_cost, Decimal('25.00'))

    def test_daily_cost_rounds_up(self):
        self.resource.pricing_unit = PricingUnit.DAY
        self.resource.rate = Decimal('40.00')
        self.resource.save()
        usage = self.check_out().data
        result = services.check_in(usage.id, checked_in_at=_at(10, day=2))
        self.assertEqual(result.data.duration_hours, Decimal('25.00'))
        self.assertEqual(result.data.calculated_cost, Decimal('80.00'))

    def test_flat_fee(self):
        self.resource.pricing_model = PricingModel.FLAT_FEE
        self.resource.pricing_unit = None
        self.resource.rate = Decimal('35.00')
        self.resource.save()
        usage = self.check_out().data
        result = services.check_in(usage.id, checked_in_at=_at(9, 20))
        self.assertEqual(result.data.calculated_cost, Decimal('35.00'))
        self.assertEqual(result.data.formatted_duration, "20m")

    def test_end_reading_below_start_is_rejected(self):
        usage = self.check_out(start_reading=Decimal('1000')).data
        result = services.check_in(usage.id, checked_in_at=_at(10), end_reading=Decimal('999'))
        self.assertFalse(result.success)
        self.assertEqual(result.reason, Rejection.READING_BELOW_START)
        self.assertEqual(result.message, "End reading cannot be less than start reading.")
        self.assertEqual(UsageLog.objects.get(id=usage.id).status, UsageLogStatus.CHECKED_OUT)

    def test_check_in_before_check_out_is_rejected(self):
        usage = self.check_out(now=_at(9)).data
        result = services.check_in(usage.id, checked_in_at=_at(8, 59))
        self.assertEqual(result.reason, Rejection.CHECK_IN_BEFORE_CHECK_OUT)

    def test_cannot_check_in_twice(self):
        usage = self.check_out().data
        self.assertTrue(services.check_in(usage.id, checked_in_at=_at(10)).success)
        again = services.check_in(usage.id, checked_in_at=_at(11))
        self.assertEqual(again.reason, Rejection.INVALID_TRANSITION)
        self.assertEqual(UsageLog.objects.get(id=usage.id).checked_in_at, _at(10))


class VerificationTest(UsageTestCase):

    def completed_usage(self):
        usage = self.check_out(start_reading=Decimal('100')).data
        return services.check_in(usage.id, checked_in_at=_at(10), end_reading=Decimal('110')).data

    def test_verify_completed(self):
        usage = self.completed_usage()
        admin_id = uuid4()
        result = services.verify_usage(usage.id, verified_by_id=admin_id, admin_notes="Looks right", now=_at(12))
        self.assertTrue(result.success)
        self.assertEqual(result.data.status, UsageLogStatus.VERIFIED)
        self.assertEqual(result.data.verified_by_id, admin_id)
        self.assertEqual(result.data.verified_at, _at(12))

    def test_cannot_verify_while_checked_out(self):
        usage = self.check_out().data
        result = services.verify_usage(usage.id, verified_by_id=uuid4())
        self.assertFalse(result.success)
        self.assertEqual(result.reason, Rejection.INVALID_TRANSITION)
        self.assertEqual(UsageLog.objects.get(id=usage.id).status, UsageLogStatus.CHECKED_OUT)

    def test_dispute_then_verify(self):
        usage = self.completed_usage()
        disputed = services.dispute_usage(usage.id, admin_notes="Reading looks off")
        self.assertEqual(disputed.data.status, UsageLogStatus.DISPUTED)
        self.assertFalse(disputed.data.is_billable)

        verified = services.verify_usage(usage.id, verified_by_id=uuid4())
        self.assertEqual(verified.data.status, UsageLogStatus.VERIFIED)

    def test_verified_can_be_disputed(self):
        usage = self.completed_usage()
        services.verify_usage(usage.id, verified_by_id=uuid4())
        result = services.dispute_usage(usage.id, admin_notes="Damage reported")
        self.assertTrue(result.success)
        self.assertEqual(result.data.admin_notes, "Damage reported")

    def test_cannot_dispute_while_checked_out(self):
        usage = self.check_out().data
        self.assertEqual(
            services.dispute_usage(usage.id, admin_notes="x").reason, Rejection.INVALID_TRANSITION
        )

    def test_recalculate_after_rate_change(self):
        usage = self.completed_usage()
        self.resource.rate = Decimal('1.00')
        self.resource.save()
        result = services.recalculate_usage(usage.id)
        self.assertEqual(result.data.calculated_cost, Decimal('10.00'))

    def test_pending_verification_listing(self):
        usage = self.completed_usage()
        pending = services.list_usage_logs(pending_verification=True)
        self.assertEqual([u.id for u in pending], [usage.id])

        services.verify_usage(usage.id, verified_by_id=uuid4())
        self.assertEqual(services.list_usage_logs(pending_verification=True), [])
        self.assertEqual(len(services.list_usage_logs(billable_only=True)), 1)
        self.assertEqual(services.list_usage_logs(user_id=uuid4()), [])


class UsageNotificationTest(UsageTestCase):

    def setUp(self):
        super().setUp()
        self.member = User.objects.create_user(
            username="member", email="member@example.com", password="pw", status=UserStatus.APPROVED
        )
        self.reservation = self.make_reservation(
            user_id=self.member.id,
            resource=Resource.objects.create(name="Canoe", rate=Decimal('20.00')),
        )

    def test_verify_notifies_member(self):
        usage = self.check_out().data
        services.check_in(usage.id, checked_in_at=_at(10))
        with self.captureOnCommitCallbacks(execute=True):
            services.verify_usage(usage.id, verified_by_id=uuid4())

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["member@example.com"])
        self.assertEqual(mail.outbox[0].subject, "Usage Verified: Canoe")
        self.assertIn("$20.00", mail.outbox[0].body)

    def test_dispute_notifies_member(self):
        usage = self.check_out().data
        services.check_in(usage.id, checked_in_at=_at(10))
        with self.captureOnCommitCallbacks(execute=True):
            services.dispute_usage(usage.id, admin_notes="Returned late")

        self.assertEqual(mail.outbox[0].subject, "Usage Disputed: Canoe")
        self.assertIn("Returned late", mail.outbox[0].body)


class DisplayHelperTest(TestCase):

    def test_format_duration_hours(self):
        self.assertEqual(services.format_duration_hours(Decimal('2.50')), "2h 30m")
        self.assertEqual(services.format_duration_hours(Decimal('3.00')), "3h")
        self.assertEqual(services.format_duration_hours(Decimal('0.75')), "45m")
        self.assertIsNone(services.format_duration_hours(None))

    def test_format_distance(self):
        self.assertEqual(services.format_distance(Decimal('1234.50'), PricingUnit.KILOMETER), "1,234.5 km")
        self.assertIsNone(services.format_distance(None, PricingUnit.MILE))
