from django.contrib import admin
from .models import Invoice, InvoiceItem, InvoiceSequence


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ['usage_log_id', 'resource_id', 'description', 'quantity', 'unit', 'unit_price', 'amount']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'user_id', 'billing_period_start', 'billing_period_end', 'total', 'status', 'due_date']
    list_filter = ['status']
    search_fields = ['invoice_number']
    readonly_fields = ['invoice_number', 'status', 'subtotal', 'total', 'sent_at', 'paid_at']
    inlines = [InvoiceItemInline]


@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(admin.ModelAdmin):
    list_display = ['year', 'last_number']
