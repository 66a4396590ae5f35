"""
Invoice Generation Service.
Aggregates billable, uninvoiced usage into one draft invoice per member per
billing period.
"""
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction as db_transaction
from django.db.models import Exists, OuterRef, Sum
from django.utils import timezone

from apps.resources.models import Resource, PricingUnit, DISTANCE_UNITS, unit_abbreviation
from apps.resources.pricing import days_for_hours, local_date, quantize_money
from apps.usage.models import UsageLog, BILLABLE_STATUSES

from .models import Invoice, InvoiceItem, InvoiceStatus
from .dtos import InvoiceDTO, InvoicePreviewDTO, PeriodSummaryDTO
from .invoice_numbers import allocate_invoice_number
from .services import _invoice_to_dto, _item_to_dto

logger = logging.getLogger(__name__)


def _due_days() -> int:
    return getattr(settings, 'BILLING_DUE_DAYS', 30)


def _number_retries() -> int:
    return max(1, getattr(settings, 'BILLING_INVOICE_NUMBER_RETRIES', 3))


# =============================================================================
# Billing Periods
# =============================================================================

def month_period(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month."""
    start = date(year, month, 1)
    next_month = date(year + month // 12, month % 12 + 1, 1)
    return start, next_month - timedelta(days=1)


def parse_month(value: str) -> Tuple[date, date]:
    """Billing period for "YYYY-MM". Raises ValueError on bad input."""
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError:
        raise ValueError(f"Invalid month '{value}'. Use YYYY-MM (e.g. 2025-06).")
    return month_period(parsed.year, parsed.month)


def previous_month_period(today: Optional[date] = None) -> Tuple[date, date]:
    today = today or timezone.localdate()
    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return month_period(last_of_previous.year, last_of_previous.month)


def _period_bounds(period_start: date, period_end: date) -> Tuple[datetime, datetime]:
    """Half-open datetime range covering the inclusive date range."""
    start = datetime.combine(period_start, time.min)
    end = datetime.combine(period_end + timedelta(days=1), time.min)
    if settings.USE_TZ:
        return timezone.make_aware(start), timezone.make_aware(end)
    return start, end


# =============================================================================
# Usage Selection
# =============================================================================

def uninvoiced_usage_queryset(period_start: date, period_end: date, user_id: Optional[UUID] = None):
    """
    Billable usage checked out within the period that no invoice item
    references yet, in billing order.
    """
    range_start, range_end = _period_bounds(period_start, period_end)
    queryset = UsageLog.objects.filter(
        status__in=BILLABLE_STATUSES,
        checked_out_at__gte=range_start,
        checked_out_at__lt=range_end,
    ).exclude(
        Exists(InvoiceItem.objects.filter(usage_log_id=OuterRef('id')))
    )
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    return queryset.order_by('checked_out_at', 'id')


def get_users_with_uninvoiced_usage(period_start: date, period_end: date) -> List[UUID]:
    user_ids = uninvoiced_usage_queryset(period_start, period_end).values_list('user_id', flat=True)
    return sorted(set(user_ids), key=str)


def has_uninvoiced_usage(user_id: UUID, period_start: date, period_end: date) -> bool:
    return uninvoiced_usage_queryset(period_start, period_end, user_id=user_id).exists()


def get_period_summary(period_start: date, period_end: date) -> PeriodSummaryDTO:
    """Counts and estimated total of what generation would bill."""
    queryset = uninvoiced_usage_queryset(period_start, period_end)
    total = queryset.aggregate(total=Sum('calculated_cost'))['total']
    return PeriodSummaryDTO(
        period_start=period_start,
        period_end=period_end,
        user_count=len(set(queryset.values_list('user_id', flat=True))),
        usage_count=queryset.count(),
        total_amount=quantize_money(total or 0),
    )


# =============================================================================
# Item Derivation
# =============================================================================

def build_item_from_usage(usage_log: UsageLog, resource: Resource) -> InvoiceItem:
    """
    Unsaved invoice line for a usage log.

    Quantity follows the pricing unit: distance for mile/kilometer,
    hours for hourly, whole days for daily, otherwise 1. The amount is
    the usage's calculated cost, falling back to quantity × rate.
    """
    description = resource.name
    if usage_log.checked_out_at:
        checked_out_on = local_date(usage_log.checked_out_at)
        description += f" - {checked_out_on:%b} {checked_out_on.day}, {checked_out_on.year}"

    unit_price = quantize_money(resource.rate)
    quantity = Decimal(1)
    pricing_unit = PricingUnit(resource.pricing_unit) if resource.pricing_unit else None

    if pricing_unit in DISTANCE_UNITS:
        quantity = usage_log.distance_units if usage_log.distance_units is not None else Decimal(1)
    elif pricing_unit == PricingUnit.HOUR:
        quantity = usage_log.duration_hours if usage_log.duration_hours is not None else Decimal(1)
    elif pricing_unit == PricingUnit.DAY:
        quantity = Decimal(days_for_hours(usage_log.duration_hours)) if usage_log.duration_hours is not None else Decimal(1)

    if usage_log.calculated_cost is not None:
        amount = quantize_money(usage_log.calculated_cost)
    else:
        amount = quantize_money(quantity * unit_price)

    return InvoiceItem(
        usage_log_id=usage_log.id,
        resource_id=resource.id,
        description=description,
        quantity=quantize_money(quantity),
        unit=unit_abbreviation(pricing_unit),
        unit_price=unit_price,
        amount=amount,
    )


def _build_items(usage_logs: List[UsageLog]) -> List[InvoiceItem]:
    resources: Dict[UUID, Resource] = Resource.objects.in_bulk({u.resource_id for u in usage_logs})
    items = []
    for position, usage_log in enumerate(usage_logs):
        item = build_item_from_usage(usage_log, resources[usage_log.resource_id])
        item.position = position
        items.append(item)
    return items


# =============================================================================
# Generation
# =============================================================================

def preview_for_user(user_id: UUID, period_start: date, period_end: date) -> Optional[InvoicePreviewDTO]:
    """What generate_for_user would bill, without writing anything."""
    usage_logs = list(uninvoiced_usage_queryset(period_start, period_end, user_id=user_id))
    if not usage_logs:
        return None

    items = _build_items(usage_logs)
    return InvoicePreviewDTO(
        user_id=user_id,
        period_start=period_start,
        period_end=period_end,
        items=[_item_to_dto(item) for item in items],
        subtotal=quantize_money(sum((item.amount for item in items), Decimal('0.00'))),
    )


def _create_invoice(
    user_id: UUID,
    period_start: date,
    period_end: date,
    generated_by_id: Optional[UUID],
    due_date: Optional[date],
) -> Optional[Invoice]:
    with db_transaction.atomic():
        usage_logs = list(uninvoiced_usage_queryset(period_start, period_end, user_id=user_id))
        if not usage_logs:
            return None

        items = _build_items(usage_logs)
        subtotal = quantize_money(sum((item.amount for item in items), Decimal('0.00')))
        invoice = Invoice.objects.create(
            user_id=user_id,
            invoice_number=allocate_invoice_number(timezone.localdate().year),
            billing_period_start=period_start,
            billing_period_end=period_end,
            subtotal=subtotal,
            adjustments=Decimal('0.00'),
            total=subtotal,
            status=InvoiceStatus.DRAFT,
            due_date=due_date or period_end + timedelta(days=_due_days()),
            generated_by_id=generated_by_id,
        )
        for item in items:
            item.invoice = invoice
        InvoiceItem.objects.bulk_create(items)
    return invoice


def generate_for_user(
    user_id: UUID,
    period_start: date,
    period_end: date,
    generated_by_id: Optional[UUID] = None,
    due_date: Optional[date] = None,
) -> Optional[InvoiceDTO]:
    """
    Create one draft invoice for the member's uninvoiced usage in the period.

    Returns None when there is nothing to bill. A concurrent run that
    claims the same usage or number first makes this attempt roll back
    and retry; the retry then only sees what is still uninvoiced.
    """
    retries = _number_retries()
    for attempt in range(1, retries + 1):
        try:
            invoice = _create_invoice(user_id, period_start, period_end, generated_by_id, due_date)
            break
        except IntegrityError:
            if attempt == retries:
                logger.exception(f"Giving up on invoice for user {user_id} after {attempt} attempts")
                raise
            logger.warning(f"Invoice for user {user_id} conflicted (attempt {attempt}); retrying")

    if invoice is None:
        return None

    logger.info(
        f"Generated invoice {invoice.invoice_number} for user {user_id}: "
        f"{invoice.items.count()} items, total {invoice.total}"
    )
    return _invoice_to_dto(invoice)


def generate_for_period(
    period_start: date,
    period_end: date,
    generated_by_id: Optional[UUID] = None,
) -> List[InvoiceDTO]:
    """One invoice per member with uninvoiced usage. Safe to re-run."""
    invoices = []
    for user_id in get_users_with_uninvoiced_usage(period_start, period_end):
        invoice = generate_for_user(user_id, period_start, period_end, generated_by_id)
        if invoice:
            invoices.append(invoice)

    logger.info(f"Generated {len(invoices)} invoices for {period_start} - {period_end}")
    return invoices


def generate_monthly_invoices(
    month: Optional[str] = None,
    generated_by_id: Optional[UUID] = None,
) -> List[InvoiceDTO]:
    """
    Bill a calendar month ("YYYY-MM"), the previous month by default.
    Called by the scheduler on the 1st.
    """
    period_start, period_end = parse_month(month) if month else previous_month_period()
    return generate_for_period(period_start, period_end, generated_by_id)
