"""
Celery task backend (TASK_BACKEND=celery).

Tasks are sent by name to the broker; a worker started with
`celery -A config.celery worker` picks them up.
"""
import logging
import uuid
from typing import Any, Dict

from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)

CELERY_TASKS = {
    "send_notification": "apps.core.tasks.send_notification",
    "generate_monthly_invoices": "apps.billing.tasks.generate_monthly_invoices",
    "mark_overdue_invoices": "apps.billing.tasks.mark_overdue_invoices",
}


def _get_celery_task(task_name: str):
    task_path = CELERY_TASKS.get(task_name)
    if not task_path:
        raise ValueError(f"No Celery task mapped for: {task_name}")

    from celery import current_app
    task = current_app.tasks.get(task_path)
    if task is None:
        raise ValueError(f"Celery task not registered: {task_path}")
    return task


class CeleryTaskService(TaskServiceInterface):

    def send_task(self, task_name: str, payload: Dict[str, Any], delay_seconds: int = 0) -> str:
        task = _get_celery_task(task_name)
        task_id = str(uuid.uuid4())

        options = {"task_id": task_id}
        if delay_seconds > 0:
            options["countdown"] = delay_seconds
        task.apply_async(kwargs=payload, **options)

        logger.info(f"[CELERY] Queued {task_name} (id={task_id})")
        return task_id
