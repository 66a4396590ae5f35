"""
Invoice PDF rendering.
Uses WeasyPrint to turn the billing/invoice.html template into a PDF.
"""
import logging
from io import BytesIO
from uuid import UUID

from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone

from apps.identity.services import get_user_dto

from .models import Invoice
from .services import _invoice_to_dto

logger = logging.getLogger(__name__)


def render_invoice_html(invoice_id: UUID) -> str:
    """Raises Invoice.DoesNotExist for unknown ids."""
    invoice = _invoice_to_dto(Invoice.objects.get(id=invoice_id))
    member = get_user_dto(invoice.user_id)

    context = {
        'title': f"Invoice {invoice.invoice_number}",
        'organization_name': getattr(settings, 'BILLING_ORGANIZATION_NAME', "Community Resource Sharing"),
        'invoice': invoice,
        'member_name': member.display_name if member else "",
        'member_email': member.email if member else "",
        'generated_at': timezone.localtime().strftime('%B %d, %Y at %I:%M %p'),
    }
    return render_to_string('billing/invoice.html', context)


def generate_invoice_pdf(invoice_id: UUID) -> bytes:
    """Render an invoice as PDF bytes."""
    from weasyprint import HTML

    html_content = render_invoice_html(invoice_id)

    pdf_file = BytesIO()
    HTML(string=html_content).write_pdf(pdf_file)
    pdf_file.seek(0)

    logger.info(f"Rendered PDF for invoice {invoice_id}")
    return pdf_file.read()
