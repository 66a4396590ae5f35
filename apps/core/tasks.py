"""Celery tasks for Core app."""
from uuid import UUID
from celery import shared_task

from .notification_service import deliver_notification


@shared_task(autoretry_for=(ConnectionError,), retry_backoff=True, max_retries=3)
def send_notification(kind: str, user_id: str, context: dict):
    """Deliver a queued member notification email."""
    sent = deliver_notification(kind, UUID(user_id), context)
    return f"Notification {kind} {'sent' if sent else 'skipped'} for user {user_id}"
