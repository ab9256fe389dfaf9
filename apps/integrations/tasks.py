"""Celery tasks for Integrations app."""
import logging
from uuid import UUID

from celery import shared_task

from .webhooks import deliver_webhook

logger = logging.getLogger(__name__)


@shared_task(name='apps.integrations.tasks.deliver_webhook_task')
def deliver_webhook_task(webhook_id, event, body):
    """
    Deliver one signed webhook event.
    Failures are recorded on the webhook row; there is no automatic retry.
    """
    delivered = deliver_webhook(UUID(webhook_id), event, body)
    if not delivered:
        logger.warning(f"Webhook {webhook_id} did not accept {event}")
    return delivered
