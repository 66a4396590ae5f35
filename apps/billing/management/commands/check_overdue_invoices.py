"""
Management command to mark sent invoices past their due date as overdue.
"""
from django.core.management.base import BaseCommand

from apps.billing import services


class Command(BaseCommand):
    help = 'Mark sent invoices past their due date as overdue'

    def handle(self, *args, **options):
        marked = services.mark_overdue_invoices()
        if not marked:
            self.stdout.write('No invoices to mark as overdue.')
            return

        for invoice in marked:
            self.stdout.write(f'  {invoice.invoice_number} marked as overdue')
        self.stdout.write(self.style.SUCCESS(f'Marked {len(marked)} invoices overdue'))
