"""
Background work for HaulTracker.

Callers go through `TaskService`; where the work actually runs is decided by
the TASK_BACKEND setting:

    TASK_BACKEND=local   # run in-process, right away (development, tests)
    TASK_BACKEND=celery  # hand off to a Celery worker over Redis

Every task is a Celery `shared_task`. TASK_ROUTES names them so both
backends resolve the same function.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict
from uuid import UUID

from django.conf import settings

logger = logging.getLogger(__name__)


TASK_ROUTES = {
    "deliver_webhook": "apps.integrations.tasks.deliver_webhook_task",
}


class TaskServiceInterface(ABC):

    @abstractmethod
    def send_task(self, task_name: str, payload: Dict[str, Any], delay_seconds: int = 0) -> str:
        """Run or enqueue `task_name` with `payload` as keyword arguments; returns a task id."""


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
    """One static method per kind of background work."""

    @staticmethod
    def deliver_webhook(webhook_id: UUID, event: str, body: str) -> str:
        """
        Post one event to one webhook. `body` is the exact JSON text that
        gets signed, so it is built before queueing.
        """
        logger.info(f"Queueing {event} for webhook {webhook_id}")
        return _get_backend().send_task(
            "deliver_webhook",
            {"webhook_id": str(webhook_id), "event": event, "body": body},
        )
