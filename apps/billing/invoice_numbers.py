"""
Invoice number allocation.

Numbers look like INV-2025-0001 and restart at 0001 every calendar year.
Allocation locks the year's InvoiceSequence row, so concurrent generators
serialize on it until their transaction commits. The unique constraint on
Invoice.invoice_number is the backstop; callers retry on IntegrityError.
"""
import logging

from django.db import transaction as db_transaction

from .models import Invoice, InvoiceSequence

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"


def invoice_prefix(year: int) -> str:
    return f"{INVOICE_PREFIX}-{year}-"


def format_invoice_number(year: int, number: int) -> str:
    return f"{invoice_prefix(year)}{number:04d}"


def parse_sequence(invoice_number: str) -> int:
    """Sequence part of an invoice number, e.g. 12 for INV-2025-0012."""
    return int(invoice_number.rsplit('-', 1)[1])


def highest_issued(year: int) -> int:
    """Highest sequence already used for the year (0 if none)."""
    numbers = Invoice.objects.filter(
        invoice_number__startswith=invoice_prefix(year)
    ).values_list('invoice_number', flat=True)
    return max((parse_sequence(n) for n in numbers), default=0)


def allocate_invoice_number(year: int) -> str:
    """
    Reserve the next invoice number for the year.

    Must run inside the transaction that creates the invoice: the
    sequence row stays locked until that transaction ends.
    """
    if not db_transaction.get_connection().in_atomic_block:
        raise RuntimeError("allocate_invoice_number must be called inside transaction.atomic()")

    InvoiceSequence.objects.get_or_create(year=year)
    sequence = InvoiceSequence.objects.select_for_update().get(year=year)

    next_number = max(sequence.last_number, highest_issued(year)) + 1
    sequence.last_number = next_number
    sequence.save(update_fields=['last_number'])

    invoice_number = format_invoice_number(year, next_number)
    logger.debug(f"Allocated invoice number {invoice_number}")
    return invoice_number
