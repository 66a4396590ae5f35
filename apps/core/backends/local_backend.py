"""
Local task backend (TASK_BACKEND=local).

Runs each task inline in the calling process. Used in development and
tests; nothing needs a broker or a worker.
"""
import logging
import uuid
from typing import Any, Callable, Dict

from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)

TASK_HANDLERS: Dict[str, Callable[..., Any]] = {}


def register_handler(task_name: str):
    def decorator(func):
        TASK_HANDLERS[task_name] = func
        return func
    return decorator


class LocalTaskService(TaskServiceInterface):

    def send_task(self, task_name: str, payload: Dict[str, Any], delay_seconds: int = 0) -> str:
        task_id = str(uuid.uuid4())
        handler = TASK_HANDLERS.get(task_name)
        if handler is None:
            raise ValueError(f"No local handler registered for: {task_name}")

        if delay_seconds > 0:
            logger.debug(f"[LOCAL] Running {task_name} now; delay of {delay_seconds}s ignored")

        try:
            result = handler(**payload)
        except Exception:
            logger.exception(f"[LOCAL] Task {task_name} (id={task_id}) failed")
            raise
        logger.info(f"[LOCAL] {task_name} (id={task_id}): {result}")
        return task_id


# =============================================================================
# Handlers
# =============================================================================

@register_handler("send_notification")
def handle_send_notification(kind: str, user_id: str, context: dict):
    from apps.core.notification_service import deliver_notification

    sent = deliver_notification(kind, uuid.UUID(user_id), context)
    return f"Notification {kind} {'sent' if sent else 'skipped'} for user {user_id}"


@register_handler("generate_monthly_invoices")
def handle_generate_monthly_invoices(month=None):
    from apps.billing import billing_service

    invoices = billing_service.generate_monthly_invoices(month=month)
    return f"Generated {len(invoices)} invoices"


@register_handler("mark_overdue_invoices")
def handle_mark_overdue_invoices():
    from apps.billing import services

    marked = services.mark_overdue_invoices()
    return f"Marked {len(marked)} invoices overdue"
