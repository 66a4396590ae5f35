"""
Services for Billing app - Invoice lifecycle.

    DRAFT ──send──> SENT ──pay──> PAID
                     │  ──overdue──> OVERDUE ──pay──> PAID
    DRAFT | SENT | OVERDUE ──void──> VOIDED

Items and adjustments can only change while an invoice is DRAFT.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db import transaction as db_transaction
from django.db.models import Sum
from django.utils import timezone

from apps.core.notification_service import notify, NotificationKind
from apps.core.results import OperationResult, Rejection
from apps.resources.pricing import quantize_money, format_money

from .models import (
    Invoice, InvoiceItem, InvoiceStatus,
    PAYABLE_STATUSES, VOIDABLE_STATUSES, OUTSTANDING_STATUSES,
)
from .dtos import InvoiceDTO, InvoiceItemDTO

logger = logging.getLogger(__name__)


# =============================================================================
# Totals & Adjustments
# =============================================================================

def _recalculate(invoice: Invoice):
    """Re-sum item amounts into subtotal and reapply adjustments."""
    subtotal = invoice.items.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    invoice.subtotal = quantize_money(subtotal)
    invoice.total = quantize_money(invoice.subtotal + invoice.adjustments)
    invoice.save(update_fields=['subtotal', 'total', 'updated_at'])


def recalculate_totals(invoice_id: UUID) -> InvoiceDTO:
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        _recalculate(invoice)
    return _invoice_to_dto(invoice)


def apply_adjustment(invoice_id: UUID, amount: Decimal, reason: str = "") -> OperationResult:
    """
    Set the invoice's adjustment (replacing any previous one).
    Negative amounts are credits.
    """
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if not invoice.is_editable:
            return _not_editable(invoice)

        invoice.adjustments = quantize_money(amount)
        invoice.adjustment_reason = reason or ""
        invoice.total = quantize_money(invoice.subtotal + invoice.adjustments)
        invoice.save(update_fields=['adjustments', 'adjustment_reason', 'total', 'updated_at'])

    logger.info(f"Invoice {invoice.invoice_number} adjusted by {invoice.adjustments}")
    return OperationResult.ok(_invoice_to_dto(invoice))


def add_manual_item(
    invoice_id: UUID,
    description: str,
    amount: Decimal,
    resource_id: Optional[UUID] = None,
) -> OperationResult:
    """Add a one-off line (fee, credit) to a draft invoice."""
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if not invoice.is_editable:
            return _not_editable(invoice)

        amount = quantize_money(amount)
        last = invoice.items.order_by('-position').first()
        InvoiceItem.objects.create(
            invoice=invoice,
            resource_id=resource_id,
            description=description,
            quantity=Decimal('1.00'),
            unit=None,
            unit_price=amount,
            amount=amount,
            position=(last.position + 1) if last else 0,
        )
        _recalculate(invoice)

    return OperationResult.ok(_invoice_to_dto(invoice))


def remove_item(invoice_id: UUID, item_id: UUID) -> OperationResult:
    """Remove a line from a draft invoice. A removed usage line can be invoiced again."""
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if not invoice.is_editable:
            return _not_editable(invoice)

        deleted, _ = InvoiceItem.objects.filter(id=item_id, invoice=invoice).delete()
        if not deleted:
            return _rejected(
                Rejection.ITEM_NOT_ON_INVOICE,
                "That item is not on this invoice.",
                invoice,
            )
        _recalculate(invoice)

    return OperationResult.ok(_invoice_to_dto(invoice))


# =============================================================================
# Status Transitions
# =============================================================================

def send_invoice(invoice_id: UUID, now: Optional[datetime] = None) -> OperationResult:
    """DRAFT -> SENT. The invoice must have at least one item."""
    now = now or timezone.now()

    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if invoice.status != InvoiceStatus.DRAFT:
            return _invalid_transition(invoice, "Only draft invoices can be sent.")
        if not invoice.items.exists():
            return _rejected(Rejection.INVOICE_EMPTY, "Cannot send an invoice with no items.", invoice)

        invoice.status = InvoiceStatus.SENT
        invoice.sent_at = now
        invoice.save(update_fields=['status', 'sent_at', 'updated_at'])
        dto = _invoice_to_dto(invoice)
        db_transaction.on_commit(lambda: _notify_member(NotificationKind.INVOICE_SENT, dto))

    logger.info(f"Invoice {invoice.invoice_number} sent")
    return OperationResult.ok(dto)


def mark_paid(invoice_id: UUID, now: Optional[datetime] = None) -> OperationResult:
    """SENT | OVERDUE -> PAID."""
    now = now or timezone.now()

    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if invoice.status not in PAYABLE_STATUSES:
            return _invalid_transition(invoice, "Only sent or overdue invoices can be marked paid.")

        invoice.status = InvoiceStatus.PAID
        invoice.paid_at = now
        invoice.save(update_fields=['status', 'paid_at', 'updated_at'])

    logger.info(f"Invoice {invoice.invoice_number} paid")
    return OperationResult.ok(_invoice_to_dto(invoice))


def mark_overdue(invoice_id: UUID) -> OperationResult:
    """SENT -> OVERDUE."""
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if invoice.status != InvoiceStatus.SENT:
            return _invalid_transition(invoice, "Only sent invoices can become overdue.")

        invoice.status = InvoiceStatus.OVERDUE
        invoice.save(update_fields=['status', 'updated_at'])
        dto = _invoice_to_dto(invoice)
        db_transaction.on_commit(lambda: _notify_member(NotificationKind.INVOICE_OVERDUE, dto))

    logger.info(f"Invoice {invoice.invoice_number} is overdue")
    return OperationResult.ok(dto)


def void_invoice(invoice_id: UUID) -> OperationResult:
    """
    DRAFT | SENT | OVERDUE -> VOIDED.

    Voiding releases the invoice's usage logs: their items keep the line
    details but no longer reference the logs, so the next generation run
    can bill them again.
    """
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().get(id=invoice_id)
        if invoice.status not in VOIDABLE_STATUSES:
            return _invalid_transition(invoice, "Paid or voided invoices cannot be voided.")

        invoice.status = InvoiceStatus.VOIDED
        invoice.save(update_fields=['status', 'updated_at'])
        released = invoice.items.filter(usage_log_id__isnull=False).update(usage_log_id=None)

    logger.info(f"Invoice {invoice.invoice_number} voided; released {released} usage logs")
    return OperationResult.ok(_invoice_to_dto(invoice))


def mark_overdue_invoices(today: Optional[date] = None) -> List[InvoiceDTO]:
    """
    Mark every SENT invoice whose due date has passed as OVERDUE.
    Called daily by the scheduler.
    """
    today = today or timezone.localdate()
    candidate_ids = list(
        Invoice.objects.filter(
            status=InvoiceStatus.SENT,
            due_date__isnull=False,
            due_date__lt=today,
        ).values_list('id', flat=True)
    )

    marked = []
    for invoice_id in candidate_ids:
        result = mark_overdue(invoice_id)
        if result.success:
            marked.append(result.data)

    logger.info(f"Marked {len(marked)} invoices overdue as of {today}")
    return marked


# =============================================================================
# Queries
# =============================================================================

def get_invoice(invoice_id: UUID) -> Optional[InvoiceDTO]:
    try:
        return _invoice_to_dto(Invoice.objects.get(id=invoice_id))
    except Invoice.DoesNotExist:
        return None


def list_invoices(
    user_id: Optional[UUID] = None,
    status: Optional[str] = None,
    outstanding: bool = False,
) -> List[InvoiceDTO]:
    queryset = Invoice.objects.prefetch_related('items')
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    if status:
        queryset = queryset.filter(status=status)
    if outstanding:
        queryset = queryset.filter(status__in=OUTSTANDING_STATUSES)
    return [_invoice_to_dto(i) for i in queryset]


# =============================================================================
# Display Helpers
# =============================================================================

def format_billing_period(start: date, end: date) -> str:
    """e.g. "Jun 1 - Jun 30, 2025"."""
    return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"


def format_adjustments(amount: Decimal) -> str:
    """"$0.00", "+$15.00" or "-$10.00"."""
    if amount > 0:
        return f"+{format_money(amount)}"
    if amount < 0:
        return f"-{format_money(abs(amount))}"
    return format_money(0)


def format_quantity(quantity: Decimal, unit: Optional[str]) -> str:
    """Whole quantities print without decimals: "40 mi", "2.50 hr"."""
    if quantity == quantity.to_integral_value():
        text = f"{quantity:,.0f}"
    else:
        text = f"{quantity:,.2f}"
    return f"{text} {unit}" if unit else text


# =============================================================================
# Helper Functions
# =============================================================================

def _rejected(reason: str, message: str, invoice: Invoice) -> OperationResult:
    logger.warning(f"Invoice {invoice.invoice_number} operation rejected: {reason}")
    return OperationResult.rejected(reason, message, data=_invoice_to_dto(invoice))


def _invalid_transition(invoice: Invoice, message: str) -> OperationResult:
    return _rejected(Rejection.INVALID_TRANSITION, message, invoice)


def _not_editable(invoice: Invoice) -> OperationResult:
    return _rejected(Rejection.INVOICE_NOT_EDITABLE, "Only draft invoices can be edited.", invoice)


def _notify_member(kind: str, dto: InvoiceDTO):
    notify(kind, dto.user_id, {
        'invoice_number': dto.invoice_number,
        'billing_period': dto.billing_period,
        'total': dto.formatted_total,
        'due_date': dto.due_date.strftime('%B %d, %Y') if dto.due_date else "",
    })


def _item_to_dto(item: InvoiceItem) -> InvoiceItemDTO:
    """Convert InvoiceItem model (saved or not) to DTO."""
    return InvoiceItemDTO(
        id=None if item._state.adding else item.id,
        usage_log_id=item.usage_log_id,
        resource_id=item.resource_id,
        description=item.description,
        quantity=item.quantity,
        unit=item.unit,
        unit_price=item.unit_price,
        amount=item.amount,
        formatted_quantity=format_quantity(item.quantity, item.unit),
        formatted_amount=format_money(item.amount),
    )


def _invoice_to_dto(invoice: Invoice) -> InvoiceDTO:
    """Convert Invoice model to DTO."""
    return InvoiceDTO(
        id=invoice.id,
        user_id=invoice.user_id,
        invoice_number=invoice.invoice_number,
        billing_period_start=invoice.billing_period_start,
        billing_period_end=invoice.billing_period_end,
        billing_period=format_billing_period(invoice.billing_period_start, invoice.billing_period_end),
        subtotal=invoice.subtotal,
        adjustments=invoice.adjustments,
        adjustment_reason=invoice.adjustment_reason,
        total=invoice.total,
        formatted_subtotal=format_money(invoice.subtotal),
        formatted_adjustments=format_adjustments(invoice.adjustments),
        formatted_total=format_money(invoice.total),
        status=invoice.status,
        due_date=invoice.due_date,
        sent_at=invoice.sent_at,
        paid_at=invoice.paid_at,
        notes=invoice.notes,
        generated_by_id=invoice.generated_by_id,
        is_editable=invoice.is_editable,
        created_at=invoice.created_at,
        items=[_item_to_dto(item) for item in invoice.items.all()],
    )
