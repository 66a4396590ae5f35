"""
Celery configuration for the Community Resource Sharing project.
"""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat Schedule
app.conf.beat_schedule = {
    'generate-monthly-invoices': {
        'task': 'apps.billing.tasks.generate_monthly_invoices',
        'schedule': crontab(day_of_month='1', hour='0', minute='0'),
    },
    'mark-overdue-invoices': {
        'task': 'apps.billing.tasks.mark_overdue_invoices',
        'schedule': crontab(hour='1', minute='0'),  # Daily
    },
}
