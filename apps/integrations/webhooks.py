"""
Outbound webhook delivery.

Payload: {"event": ..., "timestamp": ..., "data": <booking>}. The exact JSON
body is signed with HMAC-SHA256 using the webhook's secret and the hex
digest is sent in the X-Webhook-Signature header.
"""
import hashlib
import hmac
import json
import logging
from typing import Any, Dict
from uuid import UUID

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.core.task_service import TaskService
from .models import Webhook

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


def sign(secret: str, body: str) -> str:
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: str, signature: str) -> bool:
    return hmac.compare_digest(sign(secret, body), signature)


def build_body(event: str, data: Dict[str, Any]) -> str:
    payload = {
        "event": event,
        "timestamp": timezone.now().isoformat(),
        "data": data,
    }
    return json.dumps(payload, cls=DjangoJSONEncoder, separators=(",", ":"))


def subscribed_webhooks(org_id: UUID, event: str):
    # JSONField `contains` lookups are not portable to SQLite; filter in Python
    return [
        webhook
        for webhook in Webhook.objects.filter(organization_id=org_id, is_active=True)
        if event in (webhook.events or [])
    ]


def dispatch_event(org_id: UUID, event: str, data: Dict[str, Any]) -> int:
    """
    Queue delivery of `event` to every active subscriber once the current
    transaction commits. Returns the number of webhooks queued.
    """
    webhooks = subscribed_webhooks(org_id, event)
    if not webhooks:
        return 0

    body = build_body(event, data)
    for webhook in webhooks:
        transaction.on_commit(
            lambda webhook_id=webhook.id: TaskService.deliver_webhook(webhook_id, event, body)
        )
    logger.info(f"Queued {event} for {len(webhooks)} webhook(s) of org {org_id}")
    return len(webhooks)


def deliver_webhook(webhook_id: UUID, event: str, body: str) -> bool:
    """
    POST one signed event. Records the outcome on the webhook row.
    Returns True on a 2xx response.
    """
    try:
        webhook = Webhook.objects.get(id=webhook_id)
    except Webhook.DoesNotExist:
        logger.warning(f"Webhook {webhook_id} no longer exists, skipping {event}")
        return False

    if not webhook.is_active:
        logger.info(f"Webhook {webhook_id} is inactive, skipping {event}")
        return False

    headers = {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: sign(webhook.secret, body),
        "X-Webhook-Event": event,
    }

    status_code = None
    try:
        response = requests.post(
            webhook.url,
            data=body.encode(),
            headers=headers,
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
        )
        status_code = response.status_code
        delivered = response.ok
    except requests.RequestException as e:
        logger.warning(f"Webhook {webhook_id} delivery of {event} failed: {e}")
        delivered = False

    updates = {"last_triggered_at": timezone.now(), "last_status_code": status_code}
    if delivered:
        updates["failure_count"] = 0
        logger.info(f"Webhook {webhook_id} delivered {event} ({status_code})")
    else:
        updates["failure_count"] = F("failure_count") + 1
        if status_code is not None:
            logger.warning(f"Webhook {webhook_id} rejected {event} ({status_code})")
    Webhook.objects.filter(id=webhook.id).update(**updates)
    return delivered
