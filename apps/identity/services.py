"""
Services for Identity app.

This is the storage layer for accounts: lookups, creation, password
hashing and verification. Callers get User instances or UserDTOs; the
password hash never leaves this module in a DTO.
"""
import logging
import secrets
from importlib import import_module
from typing import List, Optional
from uuid import UUID

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.db import IntegrityError, transaction

from apps.core.exceptions import (
    ConflictError,
    DomainValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from .dtos import UserDTO
from .models import User, UserRole

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "Email already registered for this organization"
ASSIGNABLE_TEAM_ROLES = (UserRole.ORG_ADMIN, UserRole.CUSTOMER)


def to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        role=user.role,
        organization_id=user.organization_id,
        email_verified=user.email_verified,
        is_active=user.is_active,
        last_login=user.last_login,
        created_at=user.created_at,
    )


# =============================================================================
# Lookups
# =============================================================================

def get_user(user_id) -> Optional[User]:
    try:
        return User.objects.select_related('organization').get(id=user_id)
    except (User.DoesNotExist, ValueError):
        return None


def get_user_by_email(email: str) -> Optional[User]:
    """
    Global lookup by email, used for logins without an organization.
    A platform (organization-less) account wins over tenant accounts.
    """
    users = User.objects.select_related('organization').filter(email=email.strip().lower())
    return (
        users.filter(organization__isnull=True).first()
        or users.order_by('created_at').first()
    )


def get_user_by_email_and_org(email: str, organization_id) -> Optional[User]:
    return User.objects.select_related('organization').filter(
        email=email.strip().lower(),
        organization_id=organization_id,
    ).first()


# =============================================================================
# Passwords
# =============================================================================

def hash_password(raw_password: str) -> str:
    return make_password(raw_password)


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(12)


# =============================================================================
# Mutations
# =============================================================================

def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str,
    organization_id: Optional[UUID],
    phone: str = "",
) -> User:
    """
    Insert a user. The (email, organization) unique constraint is the
    actual guard; a violation surfaces as ConflictError.
    """
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                phone=phone or "",
                role=role,
                organization_id=organization_id,
            )
    except IntegrityError:
        logger.info(f"Duplicate user {email} for organization {organization_id}")
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    logger.info(f"Created {role} user {user.id} in organization {organization_id}")
    return user


def register_customer(payload) -> User:
    """Public self-registration. The role is always customer."""
    from apps.organizations.models import Organization

    if not Organization.objects.filter(id=payload.organization_id).exists():
        raise DomainValidationError("Invalid organization")

    if get_user_by_email_and_org(payload.email, payload.organization_id):
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    return create_user(
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone or "",
        role=UserRole.CUSTOMER,
        organization_id=payload.organization_id,
    )


def update_profile(user: User, data: dict) -> User:
    for key in ('first_name', 'last_name', 'phone'):
        value = data.get(key)
        if value is not None:
            setattr(user, key, value)
    user.save()
    return user


def change_password(user: User, current_password: str, new_password: str) -> User:
    if not user.check_password(current_password):
        raise DomainValidationError("Current password is incorrect")
    user.set_password(new_password)
    user.save(update_fields=['password', 'updated_at'])
    logger.info(f"Password changed for user {user.id}")
    return user


def list_users(organization_id) -> List[UserDTO]:
    users = User.objects.filter(organization_id=organization_id).order_by('created_at')
    return [to_user_dto(u) for u in users]


def update_team_role(organization_id, actor_id, user_id, role: str) -> User:
    """Owner-only role change within one organization."""
    if role not in ASSIGNABLE_TEAM_ROLES:
        raise DomainValidationError("Invalid role")

    target = get_user(user_id)
    if target is None:
        raise NotFoundError("User not found")
    if target.organization_id != organization_id:
        raise PermissionDeniedError("Access denied")
    if target.id == actor_id:
        raise DomainValidationError("You cannot change your own role")
    if target.role == UserRole.ORG_OWNER:
        raise PermissionDeniedError("Organization owners cannot be demoted")

    target.role = role
    target.save(update_fields=['role', 'updated_at'])
    return target


def clear_expired_sessions() -> None:
    """Delete expired rows from the session store."""
    engine = import_module(settings.SESSION_ENGINE)
    engine.SessionStore.clear_expired()
    logger.info("Expired sessions cleared")
