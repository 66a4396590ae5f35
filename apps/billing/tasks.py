from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def generate_monthly_invoices(month=None):
    """
    Generate draft invoices for a month ("YYYY-MM", default: previous month).
    Scheduled on the 1st of every month.
    """
    from apps.billing.billing_service import generate_monthly_invoices as generate

    invoices = generate(month=month)
    logger.info(f"Monthly invoice run ({month or 'previous month'}) created {len(invoices)} invoices")
    return len(invoices)


@shared_task
def mark_overdue_invoices():
    """Flag sent invoices past their due date. Scheduled daily."""
    from apps.billing.services import mark_overdue_invoices as mark_overdue

    marked = mark_overdue()
    logger.info(f"Overdue check marked {len(marked)} invoices")
    return len(marked)
