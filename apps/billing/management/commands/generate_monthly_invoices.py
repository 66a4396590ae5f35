"""
Management command to generate monthly invoices from billable usage.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.billing import billing_service, services
from apps.identity.services import get_user_dto


class Command(BaseCommand):
    help = 'Generate draft invoices for all members with billable usage in a month'

    def add_arguments(self, parser):
        parser.add_argument(
            '--month',
            type=str,
            help='Month to bill (YYYY-MM). Defaults to the previous month.',
        )
        parser.add_argument(
            '--preview',
            action='store_true',
            help='Show what would be billed without creating invoices',
        )
        parser.add_argument(
            '--send',
            action='store_true',
            help='Send each invoice after it is generated',
        )

    def handle(self, *args, **options):
        month = options.get('month')
        try:
            period_start, period_end = (
                billing_service.parse_month(month) if month else billing_service.previous_month_period()
            )
        except ValueError as e:
            raise CommandError(str(e))

        self.stdout.write(
            f'Billing period: {period_start:%b} {period_start.day}, {period_start.year} - '
            f'{period_end:%b} {period_end.day}, {period_end.year}'
        )

        summary = billing_service.get_period_summary(period_start, period_end)
        if summary.usage_count == 0:
            self.stdout.write('No uninvoiced usage found for this period.')
            return

        self.stdout.write(
            f'Found {summary.usage_count} usage records for {summary.user_count} members '
            f'(estimated total ${summary.total_amount:,.2f})'
        )

        if options.get('preview'):
            self._preview(period_start, period_end)
            return

        invoices = billing_service.generate_for_period(period_start, period_end)
        for invoice in invoices:
            self.stdout.write(
                f'  {invoice.invoice_number}: {self._member_name(invoice.user_id)}, '
                f'{len(invoice.items)} items, {invoice.formatted_total}'
            )
        self.stdout.write(self.style.SUCCESS(f'Generated {len(invoices)} invoices'))

        if options.get('send') and invoices:
            sent = sum(1 for invoice in invoices if services.send_invoice(invoice.id).success)
            self.stdout.write(self.style.SUCCESS(f'Sent {sent} invoices'))

    def _preview(self, period_start, period_end):
        for user_id in billing_service.get_users_with_uninvoiced_usage(period_start, period_end):
            preview = billing_service.preview_for_user(user_id, period_start, period_end)
            self.stdout.write(
                f'  {self._member_name(user_id)}: {len(preview.items)} usage records, '
                f'subtotal ${preview.subtotal:,.2f}'
            )
        self.stdout.write('Preview complete. Run without --preview to generate invoices.')

    def _member_name(self, user_id) -> str:
        user = get_user_dto(user_id)
        return user.display_name if user else str(user_id)
