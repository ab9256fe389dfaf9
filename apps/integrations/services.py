"""Services for Integrations app: API keys and webhook subscriptions."""
import hashlib
import logging
import secrets
from typing import List, Optional, Tuple
from uuid import UUID

from django.conf import settings
from django.utils import timezone

from apps.core.exceptions import DomainValidationError, NotFoundError
from .models import ApiKey, Webhook, WebhookEvent

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 12


# =============================================================================
# API keys
# =============================================================================

def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def generate_api_key() -> str:
    return f"{settings.API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def list_api_keys(org_id: UUID) -> List[ApiKey]:
    return list(ApiKey.objects.filter(organization_id=org_id))


def get_api_key(key_id: UUID) -> ApiKey:
    try:
        return ApiKey.objects.get(id=key_id)
    except ApiKey.DoesNotExist:
        raise NotFoundError("API key not found")


def create_api_key(org_id: UUID, name: str, created_by_id: Optional[UUID] = None) -> Tuple[ApiKey, str]:
    """
    Create a key and return it with the raw value.
    The raw value is not recoverable afterwards.
    """
    raw_key = generate_api_key()
    api_key = ApiKey.objects.create(
        organization_id=org_id,
        name=name,
        prefix=raw_key[:PREFIX_LENGTH],
        key_hash=hash_api_key(raw_key),
        created_by_id=created_by_id,
    )
    logger.info(f"Created API key {api_key.id} ({api_key.prefix}...) for org {org_id}")
    return api_key, raw_key


def revoke_api_key(api_key: ApiKey) -> ApiKey:
    if api_key.is_active:
        api_key.is_active = False
        api_key.revoked_at = timezone.now()
        api_key.save(update_fields=['is_active', 'revoked_at'])
        logger.info(f"Revoked API key {api_key.id}")
    return api_key


def authenticate_api_key(raw_key: Optional[str]) -> Optional[ApiKey]:
    """Resolve an active key from its raw value and stamp its last use."""
    if not raw_key or not raw_key.startswith(settings.API_KEY_PREFIX):
        return None

    api_key = (
        ApiKey.objects
        .select_related('organization')
        .filter(key_hash=hash_api_key(raw_key), is_active=True)
        .first()
    )
    if api_key is None:
        return None

    ApiKey.objects.filter(id=api_key.id).update(last_used_at=timezone.now())
    return api_key


# =============================================================================
# Webhooks
# =============================================================================

def generate_webhook_secret() -> str:
    return secrets.token_hex(32)


def validate_events(events: List[str]) -> List[str]:
    if not events:
        raise DomainValidationError("At least one event is required")
    unknown = [event for event in events if event not in WebhookEvent.values]
    if unknown:
        raise DomainValidationError(f"Unknown webhook event: {unknown[0]}")
    # Preserve order, drop duplicates
    return list(dict.fromkeys(events))


def list_webhooks(org_id: UUID) -> List[Webhook]:
    return list(Webhook.objects.filter(organization_id=org_id))


def get_webhook(webhook_id: UUID) -> Webhook:
    try:
        return Webhook.objects.get(id=webhook_id)
    except Webhook.DoesNotExist:
        raise NotFoundError("Webhook not found")


def create_webhook(org_id: UUID, url: str, events: List[str], is_active: bool = True) -> Webhook:
    webhook = Webhook.objects.create(
        organization_id=org_id,
        url=url,
        events=validate_events(events),
        secret=generate_webhook_secret(),
        is_active=is_active,
    )
    logger.info(f"Created webhook {webhook.id} for org {org_id}")
    return webhook


def update_webhook(webhook: Webhook, data: dict) -> Webhook:
    if data.get('events') is not None:
        webhook.events = validate_events(data['events'])
    if data.get('url') is not None:
        webhook.url = data['url']
    if data.get('is_active') is not None:
        webhook.is_active = data['is_active']
        if webhook.is_active:
            webhook.failure_count = 0
    webhook.save()
    return webhook


def rotate_webhook_secret(webhook: Webhook) -> Webhook:
    webhook.secret = generate_webhook_secret()
    webhook.save(update_fields=['secret', 'updated_at'])
    logger.info(f"Rotated secret for webhook {webhook.id}")
    return webhook


def delete_webhook(webhook: Webhook) -> None:
    webhook.delete()
