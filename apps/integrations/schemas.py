from datetime import datetime
from typing import List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator
from ninja import Schema
from pydantic import Field, field_validator

from apps.core.schemas import RequestSchema


def validate_webhook_url(value: str) -> str:
    value = (value or "").strip()
    try:
        URLValidator(schemes=['http', 'https'])(value)
    except DjangoValidationError:
        raise ValueError("Invalid webhook URL")
    return value


class ApiKeyOut(Schema):
    id: UUID
    name: str
    prefix: str
    is_active: bool
    last_used_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    created_at: datetime


class ApiKeyCreatedOut(ApiKeyOut):
    """Returned once, at creation. `key` cannot be retrieved again."""
    key: str


class ApiKeyIn(RequestSchema):
    name: str = Field(min_length=1, max_length=100)


class WebhookOut(Schema):
    id: UUID
    url: str
    events: List[str]
    is_active: bool
    last_triggered_at: Optional[datetime] = None
    last_status_code: Optional[int] = None
    failure_count: int
    created_at: datetime


class WebhookCreatedOut(WebhookOut):
    """Returned at creation and on secret rotation only."""
    secret: str


class WebhookIn(RequestSchema):
    url: str
    events: List[str]
    is_active: bool = True

    @field_validator('url')
    @classmethod
    def check_url(cls, value: str) -> str:
        return validate_webhook_url(value)


class WebhookUpdate(RequestSchema):
    url: Optional[str] = None
    events: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator('url')
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_webhook_url(value)
