"""DTOs for Billing app."""
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID
from decimal import Decimal
from datetime import date, datetime


@dataclass(frozen=True)
class InvoiceItemDTO:
    """Invoice line. id is None for unsaved preview lines."""
    id: Optional[UUID]
    usage_log_id: Optional[UUID]
    resource_id: Optional[UUID]
    description: str
    quantity: Decimal
    unit: Optional[str]
    unit_price: Decimal
    amount: Decimal
    formatted_quantity: str
    formatted_amount: str


@dataclass(frozen=True)
class InvoiceDTO:
    id: UUID
    user_id: UUID
    invoice_number: str
    billing_period_start: date
    billing_period_end: date
    billing_period: str
    subtotal: Decimal
    adjustments: Decimal
    adjustment_reason: str
    total: Decimal
    formatted_subtotal: str
    formatted_adjustments: str
    formatted_total: str
    status: str
    due_date: Optional[date]
    sent_at: Optional[datetime]
    paid_at: Optional[datetime]
    notes: str
    generated_by_id: Optional[UUID]
    is_editable: bool
    created_at: datetime
    items: List[InvoiceItemDTO] = field(default_factory=list)


@dataclass(frozen=True)
class InvoicePreviewDTO:
    """What generate_for_user would produce, without writing anything."""
    user_id: UUID
    period_start: date
    period_end: date
    items: List[InvoiceItemDTO]
    subtotal: Decimal


@dataclass(frozen=True)
class PeriodSummaryDTO:
    """Uninvoiced billable usage in a billing period."""
    period_start: date
    period_end: date
    user_count: int
    usage_count: int
    total_amount: Decimal
