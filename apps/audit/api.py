from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from django.http import HttpRequest
from ninja import Router, Schema

from apps.identity.guards import require_auth
from apps.identity.permissions import Permissions, authorize, require_organization
from .models import AuditLog

router = Router(tags=["Audit"])


class AuditLogOut(Schema):
    id: UUID
    organization_id: Optional[UUID]
    action: str
    target_type: str
    target_id: Optional[UUID]
    target_label: str
    performed_by_id: Optional[UUID]
    performed_at: datetime
    context: dict


@router.get("", response=List[AuditLogOut])
def list_audit_logs(
    request: HttpRequest,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 100,
):
    """
    List audit log entries for the caller's organization.
    Supports filtering by action name, target type, and date range.
    """
    ctx = require_auth(request)
    org_id = require_organization(ctx)
    authorize(ctx, org_id, Permissions.AUDIT_VIEW)

    qs = AuditLog.objects.filter(organization_id=org_id)

    if action:
        qs = qs.filter(action=action)
    if target_type:
        qs = qs.filter(target_type=target_type)
    if start_date:
        qs = qs.filter(performed_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(performed_at__date__lte=end_date)

    return list(qs[:max(1, min(limit, 500))])
