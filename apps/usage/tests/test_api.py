"""
API tests for the usage endpoints.
"""
from decimal import Decimal
from datetime import timedelta
from uuid import uuid4
from django.test import TestCase
from django.utils import timezone

from apps.identity.models import User, UserRole, UserStatus
from apps.resources.models import Resource, PricingModel, PricingUnit
from apps.reservations.models import Reservation, ReservationStatus
from apps.usage.models import UsageLogStatus


class UsageApiTest(TestCase):

    def setUp(self):
        self.member = User.objects.create_user(
            username="member", password="pw", status=UserStatus.APPROVED
        )
        self.admin = User.objects.create_user(
            username="admin", password="pw", role=UserRole.ADMIN, status=UserStatus.APPROVED
        )
        self.resource = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        now = timezone.now()
        self.reservation = Reservation.objects.create(
            resource_id=self.resource.id,
            user_id=self.member.id,
            starts_at=now - timedelta(hours=1),
            ends_at=now + timedelta(hours=3),
            status=ReservationStatus.CONFIRMED,
        )

    def post(self, url, data=None):
        return self.client.post(url, data or {}, content_type="application/json")

    def check_out(self, **extra):
        return self.post("/api/usage/check-out", {"reservation_id": str(self.reservation.id), **extra})

    def test_check_out_and_check_in(self):
        self.client.force_login(self.member)

        response = self.check_out(start_reading="1000")
        self.assertEqual(response.status_code, 200)
        usage_log_id = response.json()["id"]
        self.assertEqual(response.json()["status"], UsageLogStatus.CHECKED_OUT)

        response = self.post(f"/api/usage/{usage_log_id}/check-in", {"end_reading": "1040"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], UsageLogStatus.COMPLETED)
        self.assertEqual(Decimal(body["calculated_cost"]), Decimal('20.00'))
        self.assertEqual(body["formatted_distance"], "40.0 mi")

    def test_rejection_is_reported_as_400(self):
        self.client.force_login(self.member)
        self.check_out(start_reading="1000")

        response = self.check_out()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["reason"], "ALREADY_CHECKED_OUT")

    def test_check_out_unknown_reservation(self):
        self.client.force_login(self.member)
        response = self.post("/api/usage/check-out", {"reservation_id": str(uuid4())})
        self.assertEqual(response.status_code, 404)

    def test_requires_login(self):
        self.assertEqual(self.check_out().status_code, 401)

    def test_member_cannot_check_in_someone_elses_usage(self):
        self.client.force_login(self.member)
        usage_log_id = self.check_out().json()["id"]

        other = User.objects.create_user(username="other", password="pw", status=UserStatus.APPROVED)
        self.client.force_login(other)
        response = self.post(f"/api/usage/{usage_log_id}/check-in", {})
        self.assertEqual(response.status_code, 403)

    def test_admin_verifies_completed_usage(self):
        self.client.force_login(self.member)
        usage_log_id = self.check_out(start_reading="1000").json()["id"]
        self.post(f"/api/usage/{usage_log_id}/check-in", {"end_reading": "1010"})

        response = self.post(f"/api/usage/{usage_log_id}/verify", {"admin_notes": "ok"})
        self.assertEqual(response.status_code, 403)

        self.client.force_login(self.admin)
        response = self.post(f"/api/usage/{usage_log_id}/verify", {"admin_notes": "ok"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], UsageLogStatus.VERIFIED)

        pending = self.client.get("/api/usage/", {"pending_verification": "true"})
        self.assertEqual(pending.json(), [])

    def test_members_only_list_their_own_usage(self):
        self.client.force_login(self.member)
        self.check_out()

        other = User.objects.create_user(username="other", password="pw", status=UserStatus.APPROVED)
        self.client.force_login(other)
        self.assertEqual(self.client.get("/api/usage/").json(), [])

        self.client.force_login(self.admin)
        self.assertEqual(len(self.client.get("/api/usage/").json()), 1)
