"""
Member notification service.

Use notify() / notify_admins() when a state change should reach a person.
Both are fire-and-forget: they never raise, so a delivery failure will
never roll back or break the calling operation.

Usage:
    from apps.core.notification_service import notify, NotificationKind

    notify(
        NotificationKind.INVOICE_SENT,
        user_id=invoice.user_id,
        context={"invoice_number": invoice.invoice_number, "total": str(invoice.total)},
    )

Delivery goes through TaskService (sync locally, Celery in production)
and ends in deliver_notification(), which sends a plain-text email.
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


class NotificationKind:
    """Canonical notification identifiers."""
    RESERVATION_CONFIRMED = "reservation_confirmed"
    RESERVATION_PENDING = "reservation_pending"
    NEW_RESERVATION_ALERT = "new_reservation_alert"
    USAGE_VERIFIED = "usage_verified"
    USAGE_DISPUTED = "usage_disputed"
    INVOICE_SENT = "invoice_sent"
    INVOICE_OVERDUE = "invoice_overdue"


# kind -> (subject, body); formatted with the notification context
TEMPLATES = {
    NotificationKind.RESERVATION_CONFIRMED: (
        "Reservation Confirmed: {resource_name}",
        "Your reservation for {resource_name} has been confirmed.\n\n"
        "Starts: {starts_at}\nEnds: {ends_at}\nCost: {price}",
    ),
    NotificationKind.RESERVATION_PENDING: (
        "Reservation Requested: {resource_name}",
        "Your reservation for {resource_name} is waiting for administrator approval.\n\n"
        "Starts: {starts_at}\nEnds: {ends_at}",
    ),
    NotificationKind.NEW_RESERVATION_ALERT: (
        "New Reservation: {resource_name}",
        "{headline}\n\nResource: {resource_name}\nMember: {member_name}\n"
        "Starts: {starts_at}\nEnds: {ends_at}\nNotes: {notes}",
    ),
    NotificationKind.USAGE_VERIFIED: (
        "Usage Verified: {resource_name}",
        "Your usage of {resource_name} has been verified.\n\nCost: {cost}\n{admin_notes}",
    ),
    NotificationKind.USAGE_DISPUTED: (
        "Usage Disputed: {resource_name}",
        "An administrator has flagged your usage of {resource_name} for review.\n\n"
        "Notes: {admin_notes}",
    ),
    NotificationKind.INVOICE_SENT: (
        "Your Invoice: {invoice_number}",
        "A new invoice has been generated for your resource usage.\n\n"
        "Invoice #: {invoice_number}\nBilling Period: {billing_period}\n"
        "Total Amount: {total}\nDue Date: {due_date}",
    ),
    NotificationKind.INVOICE_OVERDUE: (
        "Payment Overdue: {invoice_number}",
        "Your invoice is now past due. Please arrange payment as soon as possible.\n\n"
        "Invoice #: {invoice_number}\nAmount Due: {total}\nOriginal Due Date: {due_date}\n\n"
        "If you have already made payment, please disregard this notice.",
    ),
}


class _SafeContext(dict):
    def __missing__(self, key):
        return ""


def render_notification(kind: str, context: Dict[str, Any]):
    """Return (subject, body) for a notification kind."""
    subject, body = TEMPLATES[kind]
    values = _SafeContext(context)
    return subject.format_map(values), body.format_map(values)


def notify(kind: str, user_id: UUID, context: Optional[Dict[str, Any]] = None) -> bool:
    """
    Queue a notification for one member.

    Never raises. Returns True when the task was handed to the backend.
    """
    try:
        from apps.core.task_service import TaskService
        TaskService.send_notification(kind=kind, user_id=user_id, context=context or {})
        return True
    except Exception:
        logger.exception(f"Failed to dispatch {kind} notification for user {user_id}")
        return False


def notify_admins(kind: str, context: Optional[Dict[str, Any]] = None) -> int:
    """Queue a notification for every approved administrator. Never raises."""
    try:
        from apps.identity.services import list_admin_ids
        admin_ids = list_admin_ids()
    except Exception:
        logger.exception(f"Failed to resolve administrators for {kind} notification")
        return 0
    return sum(1 for admin_id in admin_ids if notify(kind, admin_id, context))


def deliver_notification(kind: str, user_id: UUID, context: Dict[str, Any]) -> bool:
    """
    Send the notification email. Runs inside the task backend.

    Returns False when the recipient has no email address.
    """
    from apps.identity.services import get_user_dto

    user = get_user_dto(user_id)
    if not user or not user.email:
        logger.warning(f"No email address for user {user_id}; skipping {kind}")
        return False

    subject, body = render_notification(kind, context)
    send_mail(
        subject=subject,
        message=f"Hello {user.display_name}!\n\n{body}",
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(f"Sent {kind} notification to user {user_id}")
    return True
