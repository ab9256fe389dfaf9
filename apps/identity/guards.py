"""
Request guards and session helpers.

Handlers call `require_auth(request)` first and pass the returned
AuthContext on to the policy functions in `permissions`.
"""
import logging

from django.contrib.auth import SESSION_KEY, login, logout
from django.http import HttpRequest

from apps.core.exceptions import AuthenticationError
from .models import User
from .permissions import AuthContext

logger = logging.getLogger(__name__)


def build_auth_context(user: User, acting_organization_id=None) -> AuthContext:
    return AuthContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        organization_id=user.organization_id,
        acting_organization_id=acting_organization_id or user.organization_id,
    )


def require_auth(request: HttpRequest) -> AuthContext:
    """
    Require an authenticated session. Raises 401 otherwise.

    The user row is re-read on every request. A session that points at a
    user who no longer exists is flushed.
    """
    user = request.user
    if not user.is_authenticated:
        if SESSION_KEY in request.session:
            logger.info("Flushing session that references a missing user")
            request.session.flush()
        raise AuthenticationError("Authentication required")

    return build_auth_context(user, getattr(request, 'org_id', None))


def start_session(request: HttpRequest, user: User) -> None:
    """
    Log `user` in under a fresh session key.

    `login()` only rotates the key when the session belonged to someone
    else, so re-authenticating the same user is rotated here.
    """
    previous_key = request.session.session_key
    login(request, user, backend='apps.identity.backends.OrganizationScopedBackend')
    if previous_key is not None and request.session.session_key == previous_key:
        request.session.cycle_key()


def end_session(request: HttpRequest) -> None:
    logout(request)
