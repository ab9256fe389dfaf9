"""
Celery task backend. Needs a broker (CELERY_BROKER_URL) and a running worker.
"""

import logging
import uuid
from typing import Any, Dict

from config.celery import app as celery_app

from apps.core.task_service import TASK_ROUTES, TaskServiceInterface

logger = logging.getLogger(__name__)


class CeleryTaskService(TaskServiceInterface):

    def send_task(self, task_name: str, payload: Dict[str, Any], delay_seconds: int = 0) -> str:
        route = TASK_ROUTES.get(task_name)
        if route is None:
            raise ValueError(f"No Celery task mapped for: {task_name}")

        task_id = str(uuid.uuid4())
        celery_app.send_task(
            route,
            kwargs=payload,
            countdown=delay_seconds or None,
            task_id=task_id,
        )
        logger.info(f"[CELERY] Sent {route} (id={task_id})")
        return task_id
