"""API Router for Billing app."""
from typing import List, Optional
from uuid import UUID
from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest, HttpResponse

from apps.core.task_service import TaskService
from apps.identity.permissions import Permissions, get_user_permissions
from apps.reservations.schemas import RejectionOut

from . import billing_service, document_service, services
from .models import Invoice, InvoiceStatus
from .schemas import (
    InvoiceOut, InvoiceItemOut, GenerateInvoicesIn, AdjustmentIn, ManualItemIn, PeriodSummaryOut, TaskQueuedOut,
)

router = Router(tags=["Billing"])


# =============================================================================
# Helper Functions
# =============================================================================

def require_auth(request: HttpRequest):
    """Require authenticated user."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Unauthorized")


def require_permission(request: HttpRequest, permission: str):
    """Require specific permission."""
    require_auth(request)
    if permission not in get_user_permissions(request.user):
        raise HttpError(403, f"Permission denied: {permission}")


def has_permission(request: HttpRequest, permission: str) -> bool:
    return permission in get_user_permissions(request.user)


def _invoice_out(invoice) -> InvoiceOut:
    data = dict(invoice.__dict__)
    data['items'] = [InvoiceItemOut(**item.__dict__) for item in invoice.items]
    return InvoiceOut(**data)


def _get_visible_invoice(request: HttpRequest, invoice_id: UUID):
    """Members see their own invoices once sent; managers see everything."""
    invoice = services.get_invoice(invoice_id)
    if not invoice:
        raise HttpError(404, "Invoice not found")
    if has_permission(request, Permissions.BILLING_MANAGE):
        return invoice
    if invoice.user_id != request.user.id or invoice.status == InvoiceStatus.DRAFT:
        raise HttpError(404, "Invoice not found")
    return invoice


def _respond(result):
    if not result.success:
        return 400, RejectionOut(reason=result.reason, message=result.message)
    return 200, _invoice_out(result.data)


def _period(payload: GenerateInvoicesIn):
    if payload.month:
        try:
            return billing_service.parse_month(payload.month)
        except ValueError as e:
            raise HttpError(400, str(e))
    if payload.period_start and payload.period_end:
        if payload.period_end < payload.period_start:
            raise HttpError(400, "Billing period end must not be before its start")
        return payload.period_start, payload.period_end
    return billing_service.previous_month_period()


# =============================================================================
# Generation Endpoints (Admin)
# =============================================================================
# Registered before /invoices/{invoice_id} so the literal paths resolve first.

@router.post("/invoices/generate", response=List[InvoiceOut])
def generate_invoices(request: HttpRequest, payload: GenerateInvoicesIn):
    """Generate draft invoices for a period, for one member or everyone."""
    require_permission(request, Permissions.BILLING_MANAGE)
    period_start, period_end = _period(payload)

    if payload.user_id:
        invoice = billing_service.generate_for_user(
            payload.user_id, period_start, period_end, generated_by_id=request.user.id
        )
        invoices = [invoice] if invoice else []
    else:
        invoices = billing_service.generate_for_period(
            period_start, period_end, generated_by_id=request.user.id
        )
    return [_invoice_out(i) for i in invoices]


@router.post("/invoices/generate-monthly", response=TaskQueuedOut)
def queue_monthly_invoices(request: HttpRequest, month: Optional[str] = None):
    """Queue the monthly invoice run in the background (default: previous month)."""
    require_permission(request, Permissions.BILLING_MANAGE)
    if month:
        _period(GenerateInvoicesIn(month=month))
    task_id = TaskService.generate_monthly_invoices(month=month)
    return TaskQueuedOut(task_id=task_id, month=month)


@router.get("/summary", response=PeriodSummaryOut)
def period_summary(request: HttpRequest, month: Optional[str] = None):
    """Uninvoiced usage for a month (default: previous month)."""
    require_permission(request, Permissions.BILLING_MANAGE)
    period_start, period_end = _period(GenerateInvoicesIn(month=month))
    summary = billing_service.get_period_summary(period_start, period_end)
    return PeriodSummaryOut(**summary.__dict__)


# =============================================================================
# Invoice Endpoints
# =============================================================================

@router.get("/invoices", response=List[InvoiceOut])
def list_invoices(
    request: HttpRequest,
    status: Optional[str] = None,
    outstanding: bool = False,
):
    """List invoices. Members only see their own sent invoices."""
    require_permission(request, Permissions.BILLING_VIEW_OWN)
    if has_permission(request, Permissions.BILLING_MANAGE):
        invoices = services.list_invoices(status=status, outstanding=outstanding)
    else:
        invoices = [
            i for i in services.list_invoices(user_id=request.user.id, status=status, outstanding=outstanding)
            if i.status != InvoiceStatus.DRAFT
        ]
    return [_invoice_out(i) for i in invoices]


@router.get("/invoices/{invoice_id}", response=InvoiceOut)
def get_invoice(request: HttpRequest, invoice_id: UUID):
    require_permission(request, Permissions.BILLING_VIEW_OWN)
    return _invoice_out(_get_visible_invoice(request, invoice_id))


@router.get("/invoices/{invoice_id}/pdf")
def download_invoice_pdf(request: HttpRequest, invoice_id: UUID):
    """Download an invoice as PDF."""
    require_permission(request, Permissions.BILLING_VIEW_OWN)
    invoice = _get_visible_invoice(request, invoice_id)

    pdf_bytes = document_service.generate_invoice_pdf(invoice.id)
    response = HttpResponse(pdf_bytes, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{invoice.invoice_number}.pdf"'
    return response


# =============================================================================
# Lifecycle Endpoints (Admin)
# =============================================================================

def _run(operation, invoice_id: UUID, *args, **kwargs):
    try:
        return _respond(operation(invoice_id, *args, **kwargs))
    except Invoice.DoesNotExist:
        raise HttpError(404, "Invoice not found")


@router.post("/invoices/{invoice_id}/send", response={200: InvoiceOut, 400: RejectionOut})
def send_invoice(request: HttpRequest, invoice_id: UUID):
    require_permission(request, Permissions.BILLING_MANAGE)
    return _run(services.send_invoice, invoice_id)


@router.post("/invoices/{invoice_id}/pay", response={200: InvoiceOut, 400: RejectionOut})
def mark_paid(request: HttpRequest, invoice_id: UUID):
    require_permission(request, Permissions.BILLING_MANAGE)
    return _run(services.mark_paid, invoice_id)


@router.post("/invoices/{invoice_id}/void", response={200: InvoiceOut, 400: RejectionOut})
def void_invoice(request: HttpRequest, invoice_id: UUID):
    require_permission(request, Permissions.BILLING_MANAGE)
    return _run(services.void_invoice, invoice_id)


@router.post("/invoices/{invoice_id}/adjustment", response={200: InvoiceOut, 400: RejectionOut})
def apply_adjustment(request: HttpRequest, invoice_id: UUID, payload: AdjustmentIn):
    require_permission(request, Permissions.BILLING_MANAGE)
    return _run(services.apply_adjustment, invoice_id, payload.amount, payload.reason)


@router.post("/invoices/{invoice_id}/items", response={200: InvoiceOut, 400: RejectionOut})
def add_manual_item(request: HttpRequest, invoice_id: UUID, payload: ManualItemIn):
    require_permission(request, Permissions.BILLING_MANAGE)
    return _run(
        services.add_manual_item, invoice_id,
        description=payload.description, amount=payload.amount, resource_id=payload.resource_id,
    )


@router.delete("/invoices/{invoice_id}/items/{item_id}", response={200: InvoiceOut, 400: RejectionOut})
def remove_item(request: HttpRequest, invoice_id: UUID, item_id: UUID):
    require_permission(request, Permissions.BILLING_MANAGE)
    return _run(services.remove_item, invoice_id, item_id)
