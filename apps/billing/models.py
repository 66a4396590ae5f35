"""Models for Billing app."""
import uuid
from decimal import Decimal
from django.db import models


class InvoiceStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    SENT = 'SENT', 'Sent'
    PAID = 'PAID', 'Paid'
    OVERDUE = 'OVERDUE', 'Overdue'
    VOIDED = 'VOIDED', 'Voided'


# Items and adjustments may only change while DRAFT
EDITABLE_STATUSES = [InvoiceStatus.DRAFT]
PAYABLE_STATUSES = [InvoiceStatus.SENT, InvoiceStatus.OVERDUE]
VOIDABLE_STATUSES = [InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.OVERDUE]
OUTSTANDING_STATUSES = PAYABLE_STATUSES


class Invoice(models.Model):
    """
    One member's bill for one billing period.
    total = subtotal + adjustments, recomputed whenever either changes.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.UUIDField(db_index=True)  # References User
    invoice_number = models.CharField(max_length=20, unique=True)  # INV-2025-0001

    billing_period_start = models.DateField()
    billing_period_end = models.DateField()

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    adjustments = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        help_text="Signed manual correction (negative for credits)"
    )
    adjustment_reason = models.CharField(max_length=255, blank=True)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.DRAFT
    )
    due_date = models.DateField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    generated_by_id = models.UUIDField(null=True, blank=True)  # References User (admin)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-billing_period_start', '-invoice_number']
        indexes = [
            models.Index(fields=['user_id', 'status']),
            models.Index(fields=['status', 'due_date']),
            models.Index(fields=['billing_period_start', 'billing_period_end']),
        ]

    def __str__(self):
        return f"{self.invoice_number} ({self.status})"

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES


class InvoiceItem(models.Model):
    """
    One billable line. Derived 1:1 from a usage log, or entered manually
    (usage_log_id null).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    # Unique: a usage log is billed at most once
    usage_log_id = models.UUIDField(unique=True, null=True, blank=True)
    resource_id = models.UUIDField(null=True, blank=True)

    description = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1.00'))
    unit = models.CharField(max_length=10, null=True, blank=True)  # hr, day, mi, km, trip
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    position = models.PositiveIntegerField(default=0)  # Line order on the invoice

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['position', 'created_at']

    def __str__(self):
        return f"{self.description}: {self.amount}"


class InvoiceSequence(models.Model):
    """
    Per-year row locked while allocating invoice numbers.
    """
    year = models.PositiveIntegerField(unique=True)
    last_number = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"INV-{self.year} @ {self.last_number}"
