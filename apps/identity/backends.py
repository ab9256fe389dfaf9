from django.contrib.auth.backends import BaseBackend

from . import services


class OrganizationScopedBackend(BaseBackend):
    """
    Authenticates by (email, organization) instead of a global username.

    Without an organization the lookup is global and prefers the
    platform account; the API layer then refuses non-super-admin logins
    that came in without organization context.
    """

    def authenticate(self, request, email=None, password=None, organization_id=None, **kwargs):
        if email is None or password is None:
            return None

        if organization_id:
            user = services.get_user_by_email_and_org(email, organization_id)
        else:
            user = services.get_user_by_email(email)

        if user is None:
            # Hash anyway so a missing account costs the same as a wrong password
            services.hash_password(password)
            return None

        if user.check_password(password) and user.is_active:
            return user
        return None

    def get_user(self, user_id):
        user = services.get_user(user_id)
        if user is None or not user.is_active:
            return None
        return user
