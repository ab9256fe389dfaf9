from typing import List
from uuid import UUID

from django.http import HttpRequest
from ninja import Router

from apps.audit.audit_service import AuditAction, log_action
from apps.core.schemas import MessageOut
from apps.identity.guards import require_auth
from apps.identity.permissions import Permissions, authorize, require_organization
from . import services
from .schemas import (
    ApiKeyCreatedOut,
    ApiKeyIn,
    ApiKeyOut,
    WebhookCreatedOut,
    WebhookIn,
    WebhookOut,
    WebhookUpdate,
)

api_keys_router = Router(tags=["API Keys"])
webhooks_router = Router(tags=["Webhooks"])


# =============================================================================
# API keys
# =============================================================================

@api_keys_router.get("", response=List[ApiKeyOut])
def list_api_keys(request: HttpRequest):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.INTEGRATIONS_MANAGE)
    return services.list_api_keys(org_id)


@api_keys_router.post("", response={201: ApiKeyCreatedOut})
def create_api_key(request: HttpRequest, payload: ApiKeyIn):
    """
    Create a key for the external booking API.

    The raw key is in this response only; store it now.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.INTEGRATIONS_MANAGE)

    api_key, raw_key = services.create_api_key(org_id, payload.name, created_by_id=ctx.user_id)

    log_action(
        organization_id=org_id,
        action=AuditAction.CREATE_API_KEY,
        target_type="ApiKey",
        target_id=api_key.id,
        target_label=f"{api_key.name} ({api_key.prefix}...)",
        performed_by_id=ctx.user_id,
    )
    api_key.key = raw_key
    return 201, api_key


@api_keys_router.delete("/{uuid:key_id}", response=MessageOut)
def revoke_api_key(request: HttpRequest, key_id: UUID):
    ctx = require_auth(request)
    api_key = services.get_api_key(key_id)
    authorize(ctx, api_key.organization_id, Permissions.INTEGRATIONS_MANAGE)
    services.revoke_api_key(api_key)

    log_action(
        organization_id=api_key.organization_id,
        action=AuditAction.REVOKE_API_KEY,
        target_type="ApiKey",
        target_id=api_key.id,
        target_label=f"{api_key.name} ({api_key.prefix}...)",
        performed_by_id=ctx.user_id,
    )
    return {"message": "API key revoked successfully"}


# =============================================================================
# Webhooks
# =============================================================================

@webhooks_router.get("", response=List[WebhookOut])
def list_webhooks(request: HttpRequest):
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.INTEGRATIONS_MANAGE)
    return services.list_webhooks(org_id)


@webhooks_router.post("", response={201: WebhookCreatedOut})
def create_webhook(request: HttpRequest, payload: WebhookIn):
    """
    Subscribe a URL to booking events. The signing secret is returned once.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.INTEGRATIONS_MANAGE)
    return 201, services.create_webhook(org_id, payload.url, payload.events, payload.is_active)


@webhooks_router.get("/{uuid:webhook_id}", response=WebhookOut)
def get_webhook(request: HttpRequest, webhook_id: UUID):
    ctx = require_auth(request)
    webhook = services.get_webhook(webhook_id)
    authorize(ctx, webhook.organization_id, Permissions.INTEGRATIONS_MANAGE)
    return webhook


@webhooks_router.patch("/{uuid:webhook_id}", response=WebhookOut)
def update_webhook(request: HttpRequest, webhook_id: UUID, payload: WebhookUpdate):
    ctx = require_auth(request)
    webhook = services.get_webhook(webhook_id)
    authorize(ctx, webhook.organization_id, Permissions.INTEGRATIONS_MANAGE)
    return services.update_webhook(webhook, payload.dict(exclude_unset=True))


@webhooks_router.post("/{uuid:webhook_id}/rotate-secret", response=WebhookCreatedOut)
def rotate_webhook_secret(request: HttpRequest, webhook_id: UUID):
    """Issue a new signing secret. It is returned once, in this response."""
    ctx = require_auth(request)
    webhook = services.get_webhook(webhook_id)
    authorize(ctx, webhook.organization_id, Permissions.INTEGRATIONS_MANAGE)
    return services.rotate_webhook_secret(webhook)


@webhooks_router.delete("/{uuid:webhook_id}", response=MessageOut)
def delete_webhook(request: HttpRequest, webhook_id: UUID):
    ctx = require_auth(request)
    webhook = services.get_webhook(webhook_id)
    authorize(ctx, webhook.organization_id, Permissions.INTEGRATIONS_MANAGE)
    services.delete_webhook(webhook)
    return {"message": "Webhook deleted successfully"}
