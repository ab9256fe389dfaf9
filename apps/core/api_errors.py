"""
Exception handlers for the NinjaAPI instances.

The internal API answers every failure with `{"message": ...}`. The
external v1 API uses `{"error": ...}` and has its own handlers in
apps.integrations.v1_api.
"""
import logging

from django.db import IntegrityError
from django.http import Http404
from ninja import NinjaAPI
from ninja.errors import HttpError, ValidationError

from .exceptions import DomainError

logger = logging.getLogger(__name__)


def first_validation_message(errors: list) -> str:
    """Return a readable message for the first schema validation issue."""
    if not errors:
        return "Invalid request"
    error = errors[0]
    message = str(error.get('msg', 'Invalid value'))
    if message.startswith('Value error, '):
        message = message[len('Value error, '):]
    return message


def setup_exception_handlers(api: NinjaAPI):

    @api.exception_handler(DomainError)
    def domain_error_handler(request, exc: DomainError):
        return api.create_response(request, {"message": exc.message}, status=exc.status_code)

    @api.exception_handler(HttpError)
    def http_error_handler(request, exc: HttpError):
        return api.create_response(request, {"message": str(exc)}, status=exc.status_code)

    @api.exception_handler(ValidationError)
    def validation_error_handler(request, exc: ValidationError):
        return api.create_response(
            request, {"message": first_validation_message(exc.errors)}, status=400
        )

    @api.exception_handler(Http404)
    def not_found_handler(request, exc: Http404):
        return api.create_response(request, {"message": "Not found"}, status=404)

    @api.exception_handler(IntegrityError)
    def integrity_error_handler(request, exc: IntegrityError):
        logger.warning(f"Integrity error on {request.method} {request.path}: {exc}")
        return api.create_response(request, {"message": "Resource already exists"}, status=400)

    @api.exception_handler(Exception)
    def unhandled_error_handler(request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return api.create_response(request, {"message": "Internal server error"}, status=500)
