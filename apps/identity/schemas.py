"""Request schemas for Identity endpoints."""
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from apps.core.schemas import RequestSchema, normalize_email
from .models import UserRole

MIN_PASSWORD_LENGTH = 8


def check_password_length(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


class LoginSchema(RequestSchema):
    email: str
    password: str = Field(min_length=1)
    organization_id: Optional[UUID] = None

    @field_validator('email')
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)


class CustomerRegistrationSchema(RequestSchema):
    email: str
    password: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: Optional[str] = None
    organization_id: UUID

    @field_validator('email')
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def check_password(cls, value: str) -> str:
        return check_password_length(value)


class ProfileUpdateSchema(RequestSchema):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None


class ChangePasswordSchema(RequestSchema):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator('new_password')
    @classmethod
    def check_new_password(cls, value: str) -> str:
        return check_password_length(value)


class AcceptInvitationSchema(RequestSchema):
    token: str = Field(min_length=1)
    password: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: Optional[str] = None

    @field_validator('password')
    @classmethod
    def check_password(cls, value: str) -> str:
        return check_password_length(value)


class TeamRoleUpdateSchema(RequestSchema):
    role: str


class InvitationCreateSchema(RequestSchema):
    email: str
    role: str = UserRole.CUSTOMER

    @field_validator('email')
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)


class ProvisionUserSchema(RequestSchema):
    email: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: Optional[str] = None
    role: str = UserRole.ORG_ADMIN

    @field_validator('email')
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)
