import logging
import uuid

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

ORGANIZATION_HEADER = 'X-Organization-ID'


class TenantMiddleware(MiddlewareMixin):
    """
    Resolves the tenant a request acts in and stores it as `request.org_id`.

    Tenant users always act in their own organization. Super admins have
    none of their own and pick one per request with the X-Organization-ID
    header; without it they act in no tenant at all.
    """

    def process_request(self, request):
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            request.org_id = None
            return

        request.org_id = user.organization_id
        if user.is_super_admin:
            request.org_id = self._header_org_id(request) or user.organization_id

    @staticmethod
    def _header_org_id(request):
        raw = request.headers.get(ORGANIZATION_HEADER)
        if not raw:
            return None
        try:
            return uuid.UUID(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed {ORGANIZATION_HEADER} header: {raw}")
            return None
