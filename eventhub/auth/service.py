"""Authentication service: sign-up, login and password changes."""

import logging

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eventhub.auth import schemas as auth_schema
from eventhub.auth.models import ParticipantType, User, UserRole
from eventhub.common.config import get_settings
from eventhub.common.errors import Conflict, Reason, ValidationFailed
from eventhub.common.security import create_access_token, get_password_hash, verify_password

settings = get_settings()
logger = logging.getLogger(__name__)


def is_iiit_email(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower()
    return domain == settings.iiit_email_domain or domain.endswith("." + settings.iiit_email_domain)


class AuthService:
    """Service for authentication and account management."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str):
        result = await self.session.execute(
            select(User)
            .where(func.lower(User.email) == email.lower())
            .options(selectinload(User.followed_organizers))
        )
        return result.scalar_one_or_none()

    async def signup_participant(self, data: auth_schema.ParticipantSignup) -> User:
        """
        Create a participant account.

        Raises:
            ValidationFailed: IIIT participant without an IIIT email address
            Conflict: If the email is already registered
        """
        email = data.email.lower()
        if data.participant_type == ParticipantType.IIIT and not is_iiit_email(email):
            raise ValidationFailed(Reason.INVALID_INPUT, "IIIT participants must use IIIT email address")

        if await self.get_by_email(email):
            raise Conflict(Reason.ALREADY_EXISTS, "User already exists with this email")

        followed = []
        if data.followed_organizers:
            result = await self.session.execute(
                select(User).where(
                    User.id.in_(data.followed_organizers),
                    User.role == UserRole.ORGANIZER,
                    User.is_approved == True,  # noqa: E712
                )
            )
            followed = list(result.scalars().all())

        user = User(
            email=email,
            hashed_password=get_password_hash(data.password),
            role=UserRole.PARTICIPANT,
            first_name=data.first_name,
            last_name=data.last_name,
            participant_type=data.participant_type,
            college_name=data.college_name,
            contact_number=data.contact_number,
            areas_of_interest=data.areas_of_interest,
            followed_organizers=followed,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info(f"Participant account created: {user.id}")
        return user

    async def login(self, data: auth_schema.UserLogin) -> auth_schema.LoginResponse:
        """
        Authenticate and issue an access token.

        Raises:
            HTTPException: 401 on bad credentials, 403 for unapproved organizers
        """
        user = await self.get_by_email(data.email)
        if not user or not verify_password(data.password, user.hashed_password) or not user.is_active:
            logger.info(f"Failed login for {data.email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials"
            )

        if user.role == UserRole.ORGANIZER and not user.is_approved:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Your account is not approved yet"
            )

        access_token = create_access_token(str(user.id), extra={"role": user.role.value})
        return auth_schema.LoginResponse(
            access_token=access_token,
            user=auth_schema.UserRead.model_validate(user),
        )

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Raises:
            HTTPException: 401 if the current password is wrong
            ValidationFailed: If the new password is too short
        """
        if len(new_password) < settings.min_password_length:
            raise ValidationFailed(
                Reason.INVALID_INPUT,
                f"New password must be at least {settings.min_password_length} characters long",
            )
        if not verify_password(current_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Current password is incorrect"
            )

        user.hashed_password = get_password_hash(new_password)
        await self.session.commit()
        logger.info(f"Password changed for user {user.id}")
