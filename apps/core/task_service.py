"""
TaskService: one entry point for background work, whatever runs it.

TASK_BACKEND=local runs tasks inline (development, tests);
TASK_BACKEND=celery queues them on the broker.

    from apps.core.task_service import TaskService

    TaskService.send_notification(kind="invoice_sent", user_id=member_id, context={...})
    TaskService.generate_monthly_invoices(month="2025-06")
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import UUID

from django.conf import settings

logger = logging.getLogger(__name__)


class TaskServiceInterface(ABC):

    @abstractmethod
    def send_task(self, task_name: str, payload: Dict[str, Any], delay_seconds: int = 0) -> str:
        """Run or queue `task_name` with `payload` as keyword arguments; returns a task id."""


def _get_backend() -> TaskServiceInterface:
    backend = getattr(settings, 'TASK_BACKEND', 'local')

    if backend == 'local':
        from apps.core.backends.local_backend import LocalTaskService
        return LocalTaskService()
    if backend == 'celery':
        from apps.core.backends.celery_backend import CeleryTaskService
        return CeleryTaskService()
    raise ValueError(f"Unknown TASK_BACKEND: {backend}")


class TaskService:
    """Static facade, one method per task."""

    @staticmethod
    def send_notification(kind: str, user_id: UUID, context: Optional[Dict[str, Any]] = None) -> str:
        logger.debug(f"Dispatching {kind} notification for user {user_id}")
        return _get_backend().send_task(
            "send_notification",
            {"kind": kind, "user_id": str(user_id), "context": context or {}},
        )

    @staticmethod
    def generate_monthly_invoices(month: Optional[str] = None) -> str:
        """Invoice a calendar month ("YYYY-MM"); the previous month when omitted."""
        logger.info(f"Dispatching monthly invoice run for {month or 'previous month'}")
        return _get_backend().send_task("generate_monthly_invoices", {"month": month})

    @staticmethod
    def mark_overdue_invoices() -> str:
        logger.info("Dispatching overdue invoice check")
        return _get_backend().send_task("mark_overdue_invoices", {})
