"""Shared ninja schemas and field helpers."""
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from ninja import Schema
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


class RequestSchema(Schema):
    """
    Base for request bodies.

    Accepts both snake_case and camelCase keys, so `organization_id` and
    `organizationId` are equivalent. Unknown keys are ignored.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageOut(Schema):
    message: str


def normalize_email(value: str) -> str:
    value = (value or "").strip().lower()
    try:
        validate_email(value)
    except DjangoValidationError:
        raise ValueError("Invalid email")
    return value
