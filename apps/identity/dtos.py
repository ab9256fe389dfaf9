"""DTOs for Identity app."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class UserDTO:
    """A user as the API shows it. There is no password field on purpose."""
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str
    role: str
    organization_id: Optional[UUID]
    email_verified: bool
    is_active: bool
    last_login: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class InvitationDTO:
    id: UUID
    organization_id: UUID
    email: str
    role: str
    token: str
    expires_at: datetime
    accepted_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class ProvisionedUserDTO:
    """A user created by an administrator, with the one-time temporary password."""
    user: UserDTO
    temporary_password: str
