"""
Centralized audit logging service.

Use log_action() to record any critical mutation. It never raises, so a
logging failure will never break the calling request; failures are
written to the application log instead.

Usage:
    from apps.audit.audit_service import log_action, AuditAction

    log_action(
        organization_id=booking.organization_id,
        action=AuditAction.CREATE_BOOKING,
        target_type="Booking",
        target_id=booking.id,
        target_label=booking.booking_number,
        performed_by_id=ctx.user_id,
        context={"total_amount": str(booking.total_amount)},
    )
"""
import logging
from typing import Optional
from uuid import UUID

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    """
    Canonical string constants for audit log actions.
    Prevents scattered string literals and typos across apps.
    """
    # ── Identity ──────────────────────────────────────────────────────
    LOGIN = "LOGIN"
    REGISTER_CUSTOMER = "REGISTER_CUSTOMER"
    CHANGE_PASSWORD = "CHANGE_PASSWORD"
    ACCEPT_INVITATION = "ACCEPT_INVITATION"

    # ── Team ──────────────────────────────────────────────────────────
    INVITE_USER = "INVITE_USER"
    PROVISION_USER = "PROVISION_USER"
    CHANGE_ROLE = "CHANGE_ROLE"

    # ── Organizations ─────────────────────────────────────────────────
    CREATE_ORGANIZATION = "CREATE_ORGANIZATION"
    UPDATE_ORGANIZATION = "UPDATE_ORGANIZATION"
    DELETE_ORGANIZATION = "DELETE_ORGANIZATION"
    UPDATE_SETTINGS = "UPDATE_SETTINGS"

    # ── Bookings ──────────────────────────────────────────────────────
    CREATE_BOOKING = "CREATE_BOOKING"
    UPDATE_BOOKING = "UPDATE_BOOKING"
    CHANGE_BOOKING_STATUS = "CHANGE_BOOKING_STATUS"
    DELETE_BOOKING = "DELETE_BOOKING"
    RECORD_PAYMENT = "RECORD_PAYMENT"

    # ── Integrations ──────────────────────────────────────────────────
    CREATE_API_KEY = "CREATE_API_KEY"
    REVOKE_API_KEY = "REVOKE_API_KEY"


def log_action(
    *,
    organization_id: Optional[UUID],
    action: str,
    target_type: str,
    target_id: Optional[UUID],
    performed_by_id: Optional[UUID] = None,
    target_label: str = "",
    context: Optional[dict] = None,
) -> Optional[AuditLog]:
    """
    Create an AuditLog entry for a critical action.

    Args:
        organization_id: Tenant the action happened in (None for platform actions).
        action:          Action constant from AuditAction (e.g. "CREATE_BOOKING").
        target_type:     Human-readable type of the object acted on (e.g. "Booking").
        target_id:       Primary key of the object acted on.
        performed_by_id: ID of the acting user, or None for API-key/system actions.
        target_label:    Optional human-readable description of the object.
        context:         Optional dict of additional metadata to store as JSON.

    Returns:
        The created AuditLog instance, or None if creation failed.
    """
    try:
        with transaction.atomic():
            return AuditLog.objects.create(
                organization_id=organization_id,
                action=action,
                target_type=target_type,
                target_id=target_id,
                target_label=target_label[:255],
                performed_by_id=performed_by_id,
                context=context or {},
            )
    except Exception:
        logger.exception(f"Failed to write audit log entry {action} for {target_type} {target_id}")
        return None
