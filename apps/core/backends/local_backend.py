"""
In-process task backend.

The task body runs before `send_task` returns, so tests can assert on its
effects directly. Any delay is ignored.
"""

import logging
import uuid
from typing import Any, Dict

from django.utils.module_loading import import_string

from apps.core.task_service import TASK_ROUTES, TaskServiceInterface

logger = logging.getLogger(__name__)


class LocalTaskService(TaskServiceInterface):

    def send_task(self, task_name: str, payload: Dict[str, Any], delay_seconds: int = 0) -> str:
        task_id = str(uuid.uuid4())

        route = TASK_ROUTES.get(task_name)
        if route is None:
            logger.warning(f"[LOCAL] No task registered as {task_name}, skipping")
            return task_id

        if delay_seconds:
            logger.debug(f"[LOCAL] Ignoring delay of {delay_seconds}s for {task_name}")

        # Calling a shared_task directly runs its body in this process
        task = import_string(route)
        try:
            result = task(**payload)
        except Exception:
            logger.exception(f"[LOCAL] Task {task_name} ({task_id}) failed")
            raise

        logger.info(f"[LOCAL] Task {task_name} ({task_id}) returned {result!r}")
        return task_id
