"""
Tests for invoice generation: selection, item derivation, numbering and idempotence.
"""
import threading
from decimal import Decimal
from datetime import date, datetime, timezone as dt_timezone
from unittest import mock
from uuid import uuid4
from django.db import IntegrityError, connection, transaction as db_transaction
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from django.utils import timezone

from apps.billing.models import Invoice, InvoiceItem, InvoiceSequence, InvoiceStatus
from apps.billing import billing_service
from apps.billing.invoice_numbers import allocate_invoice_number, format_invoice_number
from apps.resources.models import Resource, PricingModel, PricingUnit
from apps.usage.models import UsageLog, UsageLogStatus


JUNE = (date(2025, 6, 1), date(2025, 6, 30))


def _at(day, hour=9, month=6):
    return datetime(2025, month, day, hour, 0, tzinfo=dt_timezone.utc)


def make_usage(resource, user_id, checked_out_at, status=UsageLogStatus.COMPLETED, **fields):
    return UsageLog.objects.create(
        reservation_id=uuid4(),
        user_id=user_id,
        resource_id=resource.id,
        status=status,
        checked_out_at=checked_out_at,
        checked_in_at=fields.pop('checked_in_at', checked_out_at),
        **fields,
    )


class BillingTestCase(TestCase):

    def setUp(self):
        self.member_id = uuid4()
        self.truck = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        self.year = timezone.localdate().year


class SelectionTest(BillingTestCase):

    def test_only_billable_usage_in_period(self):
        included = make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        make_usage(self.truck, self.member_id, _at(4), status=UsageLogStatus.DISPUTED,
                   calculated_cost=Decimal('5.00'))
        make_usage(self.truck, self.member_id, _at(5), status=UsageLogStatus.CHECKED_OUT)
        make_usage(self.truck, self.member_id, _at(31, month=5), calculated_cost=Decimal('7.00'))
        make_usage(self.truck, self.member_id, _at(1, month=7), calculated_cost=Decimal('7.00'))

        logs = list(billing_service.uninvoiced_usage_queryset(*JUNE))
        self.assertEqual(logs, [included])

    def test_period_edges_are_inclusive_dates(self):
        first = make_usage(self.truck, self.member_id, _at(1, hour=0))
        last = make_usage(self.truck, self.member_id, datetime(2025, 6, 30, 23, 59, tzinfo=dt_timezone.utc))
        logs = list(billing_service.uninvoiced_usage_queryset(*JUNE))
        self.assertEqual(logs, [first, last])

    def test_summary_and_users(self):
        other_id = uuid4()
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        make_usage(self.truck, self.member_id, _at(4), calculated_cost=Decimal('2.50'))
        make_usage(self.truck, other_id, _at(5), status=UsageLogStatus.VERIFIED,
                   calculated_cost=Decimal('4.00'))

        summary = billing_service.get_period_summary(*JUNE)
        self.assertEqual(summary.user_count, 2)
        self.assertEqual(summary.usage_count, 3)
        self.assertEqual(summary.total_amount, Decimal('16.50'))
        self.assertEqual(
            set(billing_service.get_users_with_uninvoiced_usage(*JUNE)), {self.member_id, other_id}
        )
        self.assertTrue(billing_service.has_uninvoiced_usage(self.member_id, *JUNE))
        self.assertFalse(billing_service.has_uninvoiced_usage(uuid4(), *JUNE))

    def test_month_helpers(self):
        self.assertEqual(billing_service.parse_month("2025-02"), (date(2025, 2, 1), date(2025, 2, 28)))
        self.assertEqual(billing_service.month_period(2024, 12), (date(2024, 12, 1), date(2024, 12, 31)))
        self.assertEqual(
            billing_service.previous_month_period(date(2025, 1, 15)), (date(2024, 12, 1), date(2024, 12, 31))
        )
        with self.assertRaises(ValueError):
            billing_service.parse_month("June 2025")


class ItemDerivationTest(BillingTestCase):

    def test_distance_item(self):
        usage = make_usage(self.truck, self.member_id, _at(1), distance_units=Decimal('40.00'),
                           calculated_cost=Decimal('20.00'))
        item = billing_service.build_item_from_usage(usage, self.truck)
        self.assertEqual(item.description, "Pickup Truck - Jun 1, 2025")
        self.assertEqual(item.quantity, Decimal('40.00'))
        self.assertEqual(item.unit, "mi")
        self.assertEqual(item.unit_price, Decimal('0.50'))
        self.assertEqual(item.amount, Decimal('20.00'))
        self.assertEqual(item.usage_log_id, usage.id)

    def test_missing_distance_defaults_to_one(self):
        usage = make_usage(self.truck, self.member_id, _at(1))
        item = billing_service.build_item_from_usage(usage, self.truck)
        self.assertEqual(item.quantity, Decimal('1.00'))
        self.assertEqual(item.amount, Decimal('0.50'))

    def test_daily_item_rounds_up(self):
        van = Resource.objects.create(
            name="Van", pricing_model=PricingModel.PER_UNIT, pricing_unit=PricingUnit.DAY, rate=Decimal('20.00')
        )
        usage = make_usage(van, self.member_id, _at(1), duration_hours=Decimal('30.00'))
        item = billing_service.build_item_from_usage(usage, van)
        self.assertEqual(item.quantity, Decimal('2.00'))
        self.assertEqual(item.unit, "day")
        self.assertEqual(item.amount, Decimal('40.00'))

    def test_flat_fee_item(self):
        hall = Resource.objects.create(name="Hall", rate=Decimal('75.00'))
        usage = make_usage(hall, self.member_id, _at(1), calculated_cost=Decimal('75.00'))
        item = billing_service.build_item_from_usage(usage, hall)
        self.assertEqual(item.quantity, Decimal('1.00'))
        self.assertIsNone(item.unit)
        self.assertEqual(item.amount, Decimal('75.00'))

    def test_zero_cost_is_kept(self):
        usage = make_usage(self.truck, self.member_id, _at(1), distance_units=Decimal('0.00'),
                           calculated_cost=Decimal('0.00'))
        item = billing_service.build_item_from_usage(usage, self.truck)
        self.assertEqual(item.amount, Decimal('0.00'))


class GenerationTest(BillingTestCase):

    def test_one_draft_invoice_per_member(self):
        first = make_usage(self.truck, self.member_id, _at(10), calculated_cost=Decimal('12.00'))
        second = make_usage(self.truck, self.member_id, _at(2), calculated_cost=Decimal('8.00'))
        make_usage(self.truck, uuid4(), _at(3), calculated_cost=Decimal('5.00'))

        invoices = billing_service.generate_for_period(*JUNE)
        self.assertEqual(len(invoices), 2)

        invoice = next(i for i in invoices if i.user_id == self.member_id)
        self.assertEqual(invoice.status, InvoiceStatus.DRAFT)
        self.assertEqual(invoice.subtotal, Decimal('20.00'))
        self.assertEqual(invoice.total, Decimal('20.00'))
        self.assertEqual(invoice.adjustments, Decimal('0.00'))
        self.assertEqual(invoice.due_date, date(2025, 7, 30))
        self.assertEqual(invoice.billing_period, "Jun 1 - Jun 30, 2025")
        self.assertEqual([item.usage_log_id for item in invoice.items], [second.id, first.id])

    def test_generation_is_idempotent(self):
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        self.assertEqual(len(billing_service.generate_for_period(*JUNE)), 1)
        self.assertEqual(billing_service.generate_for_period(*JUNE), [])
        self.assertIsNone(billing_service.generate_for_user(self.member_id, *JUNE))
        self.assertEqual(InvoiceItem.objects.count(), 1)

    def test_new_usage_goes_on_a_new_invoice(self):
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        billing_service.generate_for_period(*JUNE)
        make_usage(self.truck, self.member_id, _at(20), calculated_cost=Decimal('4.00'))

        invoice = billing_service.generate_for_user(self.member_id, *JUNE)
        self.assertEqual(len(invoice.items), 1)
        self.assertEqual(invoice.total, Decimal('4.00'))

    def test_explicit_due_date_and_generator(self):
        admin_id = uuid4()
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        invoice = billing_service.generate_for_user(
            self.member_id, *JUNE, generated_by_id=admin_id, due_date=date(2025, 7, 15)
        )
        self.assertEqual(invoice.due_date, date(2025, 7, 15))
        self.assertEqual(invoice.generated_by_id, admin_id)

    def test_preview_writes_nothing(self):
        make_usage(self.truck, self.member_id, _at(3), distance_units=Decimal('10.00'),
                   calculated_cost=Decimal('5.00'))
        preview = billing_service.preview_for_user(self.member_id, *JUNE)
        self.assertEqual(preview.subtotal, Decimal('5.00'))
        self.assertEqual(len(preview.items), 1)
        self.assertIsNone(preview.items[0].id)
        self.assertEqual(preview.items[0].formatted_quantity, "10 mi")
        self.assertEqual(Invoice.objects.count(), 0)
        self.assertIsNone(billing_service.preview_for_user(uuid4(), *JUNE))

    def test_monthly_generation_by_month_string(self):
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        self.assertEqual(billing_service.generate_monthly_invoices(month="2025-05"), [])
        invoices = billing_service.generate_monthly_invoices(month="2025-06")
        self.assertEqual(len(invoices), 1)
        self.assertEqual(invoices[0].billing_period_start, date(2025, 6, 1))


class InvoiceNumberTest(BillingTestCase):

    def test_numbers_increase_within_year(self):
        for day in (3, 4, 5):
            make_usage(self.truck, uuid4(), _at(day), calculated_cost=Decimal('1.00'))
        invoices = billing_service.generate_for_period(*JUNE)
        numbers = sorted(i.invoice_number for i in invoices)
        self.assertEqual(numbers, [format_invoice_number(self.year, n) for n in (1, 2, 3)])

    def test_allocation_format_and_yearly_restart(self):
        with db_transaction.atomic():
            self.assertEqual(allocate_invoice_number(2030), "INV-2030-0001")
            self.assertEqual(allocate_invoice_number(2030), "INV-2030-0002")
            self.assertEqual(allocate_invoice_number(2031), "INV-2031-0001")
        self.assertEqual(InvoiceSequence.objects.get(year=2030).last_number, 2)

    def test_allocation_skips_numbers_already_issued(self):
        Invoice.objects.create(
            user_id=self.member_id,
            invoice_number="INV-2030-0041",
            billing_period_start=date(2030, 1, 1),
            billing_period_end=date(2030, 1, 31),
        )
        with db_transaction.atomic():
            self.assertEqual(allocate_invoice_number(2030), "INV-2030-0042")

    def test_conflicting_number_is_retried(self):
        taken = format_invoice_number(self.year, 500)
        Invoice.objects.create(
            user_id=uuid4(), invoice_number=taken,
            billing_period_start=JUNE[0], billing_period_end=JUNE[1],
        )
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))

        fresh = format_invoice_number(self.year, 501)
        with mock.patch.object(billing_service, 'allocate_invoice_number', side_effect=[taken, fresh]):
            invoice = billing_service.generate_for_user(self.member_id, *JUNE)

        self.assertEqual(invoice.invoice_number, fresh)
        self.assertEqual(Invoice.objects.filter(user_id=self.member_id).count(), 1)
        self.assertEqual(InvoiceItem.objects.count(), 1)

    def test_gives_up_after_retries(self):
        taken = format_invoice_number(self.year, 7)
        Invoice.objects.create(
            user_id=uuid4(), invoice_number=taken,
            billing_period_start=JUNE[0], billing_period_end=JUNE[1],
        )
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))

        with self.settings(BILLING_INVOICE_NUMBER_RETRIES=2), \
                mock.patch.object(billing_service, 'allocate_invoice_number', return_value=taken):
            with self.assertRaises(IntegrityError):
                billing_service.generate_for_user(self.member_id, *JUNE)
        self.assertEqual(InvoiceItem.objects.count(), 0)

    def test_non_positive_retry_setting_still_makes_one_attempt(self):
        make_usage(self.truck, self.member_id, _at(3), calculated_cost=Decimal('10.00'))
        with self.settings(BILLING_INVOICE_NUMBER_RETRIES=0):
            invoice = billing_service.generate_for_user(self.member_id, *JUNE)
        self.assertEqual(invoice.invoice_number, format_invoice_number(self.year, 1))
        with self.settings(BILLING_INVOICE_NUMBER_RETRIES=-1):
            self.assertIsNone(billing_service.generate_for_user(self.member_id, *JUNE))


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentNumberingTest(TransactionTestCase):

    def test_parallel_allocation_never_repeats(self):
        numbers, errors = [], []

        def allocate():
            try:
                with db_transaction.atomic():
                    numbers.append(allocate_invoice_number(2032))
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=allocate) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(sorted(numbers), [format_invoice_number(2032, n) for n in range(1, 9)])

    def test_parallel_generation_numbers_are_unique(self):
        truck = Resource.objects.create(
            name="Pickup Truck",
            pricing_model=PricingModel.PER_UNIT,
            pricing_unit=PricingUnit.MILE,
            rate=Decimal('0.50'),
        )
        member_ids = [uuid4() for _ in range(6)]
        for member_id in member_ids:
            make_usage(truck, member_id, _at(3), calculated_cost=Decimal('10.00'))
        invoices, errors = [], []

        def generate(member_id):
            try:
                invoices.append(billing_service.generate_for_user(member_id, *JUNE))
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=generate, args=(m,)) for m in member_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        year = timezone.localdate().year
        self.assertEqual(
            sorted(Invoice.objects.values_list('invoice_number', flat=True)),
            [format_invoice_number(year, n) for n in range(1, 7)],
        )
        self.assertEqual(
            sorted(Invoice.objects.values_list('user_id', flat=True)), sorted(member_ids)
        )
        self.assertEqual(InvoiceItem.objects.count(), 6)
