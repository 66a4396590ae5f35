"""
API tests for invoice visibility, generation and the PDF download.
"""
from decimal import Decimal
from unittest import mock
from uuid import uuid4
from django.test import TestCase

from apps.billing import billing_service, document_service, services
from apps.billing.models import Invoice, InvoiceStatus
from apps.identity.models import User, UserRole, UserStatus
from apps.resources.models import Resource, PricingModel, PricingUnit

from .test_billing_service import JUNE, _at, make_usage


class BillingApiTest(TestCase):

    def setUp(self):
        self.member = User.objects.create_user(
            username="member", email="member@example.com", password="pw",
            first_name="Sam", last_name="Rivera", status=UserStatus.APPROVED,
        )
        self.admin = User.objects.create_user(
            username="admin", password="pw", role=UserRole.ADMIN, status=UserStatus.APPROVED
        )
        self.truck = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        make_usage(self.truck, self.member.id, _at(3), calculated_cost=Decimal('20.00'),
                   distance_units=Decimal('40'))

    def post(self, url, data=None):
        return self.client.post(url, data or {}, content_type="application/json")

    def generate(self):
        return billing_service.generate_for_user(self.member.id, *JUNE)

    def test_admin_generates_and_sends(self):
        self.client.force_login(self.admin)

        response = self.post("/api/billing/invoices/generate", {"month": "2025-06"})
        self.assertEqual(response.status_code, 200)
        invoices = response.json()
        self.assertEqual(len(invoices), 1)
        self.assertEqual(invoices[0]["status"], InvoiceStatus.DRAFT)
        self.assertEqual(invoices[0]["items"][0]["description"], "Pickup Truck - Jun 3, 2025")
        self.assertEqual(Decimal(invoices[0]["total"]), Decimal('20.00'))

        response = self.post(f"/api/billing/invoices/{invoices[0]['id']}/send")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], InvoiceStatus.SENT)

        response = self.post("/api/billing/invoices/generate", {"month": "2025-06"})
        self.assertEqual(response.json(), [])

    def test_bad_month_is_rejected(self):
        self.client.force_login(self.admin)
        response = self.post("/api/billing/invoices/generate", {"month": "June"})
        self.assertEqual(response.status_code, 400)

    def test_summary(self):
        self.client.force_login(self.admin)
        response = self.client.get("/api/billing/summary", {"month": "2025-06"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["usage_count"], 1)
        self.assertEqual(Decimal(response.json()["total_amount"]), Decimal('20.00'))

    def test_member_cannot_see_drafts(self):
        invoice = self.generate()
        self.client.force_login(self.member)

        self.assertEqual(self.client.get("/api/billing/invoices").json(), [])
        response = self.client.get(f"/api/billing/invoices/{invoice.id}")
        self.assertEqual(response.status_code, 404)

        services.send_invoice(invoice.id)
        response = self.client.get(f"/api/billing/invoices/{invoice.id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["invoice_number"], invoice.invoice_number)

    def test_member_cannot_manage_invoices(self):
        invoice = self.generate()
        self.client.force_login(self.member)
        response = self.post(f"/api/billing/invoices/{invoice.id}/send")
        self.assertEqual(response.status_code, 403)

    def test_rejection_is_reported_as_400(self):
        invoice = self.generate()
        self.client.force_login(self.admin)
        response = self.post(f"/api/billing/invoices/{invoice.id}/pay")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["reason"], "INVALID_TRANSITION")

    def test_adjustment_endpoint(self):
        invoice = self.generate()
        self.client.force_login(self.admin)
        response = self.post(
            f"/api/billing/invoices/{invoice.id}/adjustment",
            {"amount": "-5.00", "reason": "Volunteer credit"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.json()["total"]), Decimal('15.00'))

    def test_pdf_download(self):
        invoice = self.generate()
        services.send_invoice(invoice.id)
        self.client.force_login(self.member)

        with mock.patch('apps.billing.document_service.generate_invoice_pdf', return_value=b'%PDF-1.7'):
            response = self.client.get(f"/api/billing/invoices/{invoice.id}/pdf")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn(invoice.invoice_number, response['Content-Disposition'])
        self.assertEqual(response.content, b'%PDF-1.7')


class InvoiceDocumentTest(TestCase):

    def test_html_lists_items_and_member(self):
        member = User.objects.create_user(
            username="member", email="member@example.com", password="pw",
            first_name="Sam", last_name="Rivera", status=UserStatus.APPROVED,
        )
        truck = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        make_usage(truck, member.id, _at(3), calculated_cost=Decimal('20.00'), distance_units=Decimal('40'))
        invoice = billing_service.generate_for_user(member.id, *JUNE)

        html = document_service.render_invoice_html(invoice.id)
        self.assertIn(invoice.invoice_number, html)
        self.assertIn("Sam Rivera", html)
        self.assertIn("Pickup Truck - Jun 3, 2025", html)
        self.assertIn("$20.00", html)


class QueuedRunApiTest(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="pw", role=UserRole.ADMIN, status=UserStatus.APPROVED
        )
        truck = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        make_usage(truck, uuid4(), _at(3), calculated_cost=Decimal('20.00'))

    def test_queue_monthly_run(self):
        self.client.force_login(self.admin)
        response = self.client.post("/api/billing/invoices/generate-monthly?month=2025-06")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["task_id"])
        # The local backend runs the task inline
        self.assertEqual(Invoice.objects.count(), 1)

    def test_bad_month_is_not_queued(self):
        self.client.force_login(self.admin)
        response = self.client.post("/api/billing/invoices/generate-monthly?month=2025-13")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Invoice.objects.count(), 0)
