import logging

import jwt
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import ConflictError, DomainValidationError
from .dtos import InvitationDTO
from .models import OrganizationInvitation, User, UserRole
from .services import DUPLICATE_EMAIL_MESSAGE, create_user, get_user_by_email_and_org

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = 'HS256'
INVITABLE_ROLES = (UserRole.ORG_OWNER, UserRole.ORG_ADMIN, UserRole.CUSTOMER)


def to_invitation_dto(invitation: OrganizationInvitation) -> InvitationDTO:
    return InvitationDTO(
        id=invitation.id,
        organization_id=invitation.organization_id,
        email=invitation.email,
        role=invitation.role,
        token=invitation.token,
        expires_at=invitation.expires_at,
        accepted_at=invitation.accepted_at,
        created_at=invitation.created_at,
    )


class InviteService:
    @staticmethod
    def encode_token(invitation: OrganizationInvitation) -> str:
        claims = {
            'sub': str(invitation.id),
            'org': str(invitation.organization_id),
            'email': invitation.email,
            'role': invitation.role,
            'iat': timezone.now(),
            'exp': invitation.expires_at,
        }
        return jwt.encode(claims, settings.SECRET_KEY, algorithm=TOKEN_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict:
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise DomainValidationError("Invitation has expired")
        except jwt.InvalidTokenError:
            raise DomainValidationError("Invalid invitation token")

    @staticmethod
    def create_invitation(organization_id, email, role=UserRole.CUSTOMER, invited_by=None) -> OrganizationInvitation:
        """
        Creates a new invitation, or returns the still-pending one for the
        same email in the same organization.
        """
        if role not in INVITABLE_ROLES:
            raise DomainValidationError("Invalid role")

        if get_user_by_email_and_org(email, organization_id):
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        existing = OrganizationInvitation.objects.filter(
            organization_id=organization_id,
            email=email,
            accepted_at__isnull=True,
            expires_at__gt=timezone.now(),
        ).first()
        if existing:
            return existing

        invitation = OrganizationInvitation(
            organization_id=organization_id,
            email=email,
            role=role,
            invited_by=invited_by,
            expires_at=timezone.now() + settings.INVITATION_TTL,
        )
        invitation.token = InviteService.encode_token(invitation)
        invitation.save()

        logger.info(f"Created invitation {invitation.id} for {email} in organization {organization_id}")
        return invitation

    @staticmethod
    @transaction.atomic
    def accept_invitation(token, password, first_name, last_name, phone=None) -> User:
        """
        Accepts an invitation:
        1. Validates the signed token
        2. Creates the user with the invited role
        3. Marks the invitation accepted
        """
        claims = InviteService.decode_token(token)

        invitation = (
            OrganizationInvitation.objects.select_for_update()
            .filter(id=claims.get('sub'), token=token)
            .first()
        )
        if invitation is None:
            raise DomainValidationError("Invalid invitation token")

        if invitation.accepted_at is not None:
            raise DomainValidationError("Invitation is no longer valid")

        if invitation.expires_at < timezone.now():
            raise DomainValidationError("Invitation has expired")

        user = create_user(
            email=invitation.email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone=phone or "",
            role=invitation.role,
            organization_id=invitation.organization_id,
        )

        invitation.accepted_at = timezone.now()
        invitation.save(update_fields=['accepted_at'])

        logger.info(f"Invitation {invitation.id} accepted by user {user.id}")
        return user

    @staticmethod
    def list_invitations(organization_id) -> list:
        return [
            to_invitation_dto(i)
            for i in OrganizationInvitation.objects.filter(organization_id=organization_id)
        ]

