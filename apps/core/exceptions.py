"""
Domain exceptions.

Services raise these instead of ninja's HttpError so they stay usable
outside a request. Each carries the HTTP status the API layer renders it
with (see apps.core.api_errors).
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DomainValidationError(DomainError):
    """A business rule rejected the request (pricing, dates, service area)."""
    status_code = 400


class ConflictError(DomainError):
    """A uniqueness rule was violated (duplicate email, slug, ZIP code)."""
    status_code = 400


class InvalidTransitionError(DomainError):
    """A status change is not allowed from the current status."""
    status_code = 409


class NotFoundError(DomainError):
    status_code = 404


class PermissionDeniedError(DomainError):
    status_code = 403


class AuthenticationError(DomainError):
    status_code = 401
