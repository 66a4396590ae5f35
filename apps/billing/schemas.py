"""API Schemas for Billing app."""
from typing import List, Optional
from uuid import UUID
from decimal import Decimal
from datetime import date, datetime
from ninja import Schema


class InvoiceItemOut(Schema):
    id: Optional[UUID] = None
    usage_log_id: Optional[UUID] = None
    resource_id: Optional[UUID] = None
    description: str
    quantity: Decimal
    unit: Optional[str] = None
    unit_price: Decimal
    amount: Decimal
    formatted_quantity: str
    formatted_amount: str


class InvoiceOut(Schema):
    id: UUID
    user_id: UUID
    invoice_number: str
    billing_period_start: date
    billing_period_end: date
    billing_period: str
    subtotal: Decimal
    adjustments: Decimal
    adjustment_reason: str = ""
    total: Decimal
    formatted_total: str
    status: str
    due_date: Optional[date] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    notes: str = ""
    is_editable: bool
    items: List[InvoiceItemOut] = []


class GenerateInvoicesIn(Schema):
    """Either month ("YYYY-MM") or an explicit inclusive period."""
    month: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    user_id: Optional[UUID] = None


class AdjustmentIn(Schema):
    amount: Decimal
    reason: str = ""


class ManualItemIn(Schema):
    description: str
    amount: Decimal
    resource_id: Optional[UUID] = None


class PeriodSummaryOut(Schema):
    period_start: date
    period_end: date
    user_count: int
    usage_count: int
    total_amount: Decimal


class TaskQueuedOut(Schema):
    task_id: str
    month: Optional[str] = None
