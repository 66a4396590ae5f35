from django.test import TestCase
from .models import User, UserRole, UserStatus
from .permissions import get_user_permissions, Permissions
from . import services


class RBACTest(TestCase):
    def test_member_permissions(self):
        user = User.objects.create_user(username="member", password="pw", status=UserStatus.APPROVED)
        perms = get_user_permissions(user)
        self.assertIn(Permissions.RESERVATION_CREATE, perms)
        self.assertNotIn(Permissions.USAGE_VERIFY, perms)
        self.assertNotIn(Permissions.BILLING_MANAGE, perms)

    def test_admin_permissions(self):
        user = User.objects.create_user(
            username="admin", password="pw", role=UserRole.ADMIN, status=UserStatus.APPROVED
        )
        perms = get_user_permissions(user)
        self.assertIn(Permissions.USAGE_VERIFY, perms)
        self.assertIn(Permissions.BILLING_MANAGE, perms)

    def test_pending_member_has_no_permissions(self):
        user = User.objects.create_user(username="newbie", password="pw")
        self.assertEqual(user.status, UserStatus.PENDING)
        self.assertEqual(get_user_permissions(user), [])


class UserServicesTest(TestCase):
    def test_list_admin_ids_only_returns_approved_admins(self):
        approved = User.objects.create_user(
            username="a1", password="pw", role=UserRole.ADMIN, status=UserStatus.APPROVED
        )
        User.objects.create_user(
            username="a2", password="pw", role=UserRole.ADMIN, status=UserStatus.SUSPENDED
        )
        User.objects.create_user(username="m1", password="pw", status=UserStatus.APPROVED)

        self.assertEqual(services.list_admin_ids(), [approved.id])

    def test_set_user_status(self):
        user = User.objects.create_user(username="m2", password="pw")
        dto = services.set_user_status(user.id, UserStatus.APPROVED)
        self.assertEqual(dto.status, UserStatus.APPROVED)
        self.assertIn(Permissions.RESERVATION_CREATE, dto.permissions)

    def test_get_user_dto_missing(self):
        from uuid import uuid4
        self.assertIsNone(services.get_user_dto(uuid4()))

    def test_list_members_filters_by_status(self):
        User.objects.create_user(username="p1", password="pw")
        User.objects.create_user(username="ok1", password="pw", status=UserStatus.APPROVED)

        pending = services.list_members(status=UserStatus.PENDING)
        self.assertEqual([m.username for m in pending], ["p1"])
        self.assertEqual(len(services.list_members()), 2)


class IdentityApiTest(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw", role=UserRole.ADMIN, status=UserStatus.APPROVED
        )
        self.applicant = User.objects.create_user(username="applicant", password="pw")

    def test_me_requires_login(self):
        response = self.client.get("/api/identity/me")
        self.assertEqual(response.status_code, 401)

    def test_pending_member_can_read_own_profile(self):
        self.client.force_login(self.applicant)
        response = self.client.get("/api/identity/me")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], UserStatus.PENDING)
        self.assertEqual(response.json()["permissions"], [])

    def test_admin_approves_member(self):
        self.client.force_login(self.admin)
        response = self.client.get("/api/identity/members", {"status": UserStatus.PENDING})
        self.assertEqual([m["username"] for m in response.json()], ["applicant"])

        response = self.client.post(
            f"/api/identity/members/{self.applicant.id}/status",
            {"status": UserStatus.APPROVED},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.status, UserStatus.APPROVED)

    def test_member_cannot_manage_members(self):
        services.set_user_status(self.applicant.id, UserStatus.APPROVED)
        self.client.force_login(self.applicant)
        response = self.client.get("/api/identity/members")
        self.assertEqual(response.status_code, 403)

    def test_unknown_status_rejected(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            f"/api/identity/members/{self.applicant.id}/status",
            {"status": "BANNED"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
