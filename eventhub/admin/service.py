"""Admin service layer - organizer accounts and password reset requests."""

import logging
import re
from typing import List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.admin.models import PasswordResetRequest, ResetStatus
from eventhub.admin.schemas import OrganizerCreate
from eventhub.auth.models import User, UserRole
from eventhub.common.config import get_settings
from eventhub.common.db import utcnow
from eventhub.common.errors import Conflict, NotFound, Reason
from eventhub.common.security import generate_temporary_password, get_password_hash
from eventhub.notifications.email import send_organizer_credentials

settings = get_settings()
logger = logging.getLogger(__name__)


def organizer_login_email(organizer_name: str) -> str:
    local_part = re.sub(r"\s+", "_", organizer_name.strip().lower())
    return f"{local_part}@{settings.organizer_email_domain}"


async def _send_credentials(organizer: User, password: str) -> bool:
    try:
        return await run_in_threadpool(
            send_organizer_credentials,
            organizer.contact_email,
            organizer.organizer_name or organizer.email,
            organizer.email,
            password,
        )
    except Exception as e:
        logger.error(f"Credential email for organizer {organizer.id} failed: {e}")
        return False


async def get_dashboard(db: AsyncSession) -> dict:
    async def count(*criteria) -> int:
        return (await db.execute(select(func.count(User.id)).where(*criteria))).scalar_one()

    return {
        "total_organizers": await count(User.role == UserRole.ORGANIZER),
        "approved_organizers": await count(User.role == UserRole.ORGANIZER, User.is_approved == True),  # noqa: E712
        "total_participants": await count(User.role == UserRole.PARTICIPANT),
        "pending_password_resets": await count(User.password_reset_requested == True),  # noqa: E712
    }


async def list_organizers(db: AsyncSession) -> List[User]:
    result = await db.execute(
        select(User).where(User.role == UserRole.ORGANIZER).order_by(User.created_on.desc())
    )
    return list(result.scalars().all())


async def _get_organizer(db: AsyncSession, organizer_id: int) -> User:
    organizer = await db.get(User, organizer_id)
    if not organizer or organizer.role != UserRole.ORGANIZER:
        raise NotFound("Organizer not found")
    return organizer


async def create_organizer(db: AsyncSession, data: OrganizerCreate) -> Tuple[User, str, bool]:
    """
    Create an approved organizer with generated credentials.

    Returns:
        (organizer, temporary password, whether the credentials email went out)

    Raises:
        Conflict: If an account with the generated login email exists
    """
    email = organizer_login_email(data.organizer_name)
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise Conflict(Reason.ALREADY_EXISTS, f"An account with email {email} already exists")

    password = generate_temporary_password()
    organizer = User(
        email=email,
        hashed_password=get_password_hash(password),
        role=UserRole.ORGANIZER,
        organizer_name=data.organizer_name,
        category=data.category,
        description=data.description,
        contact_email=data.contact_email,
        is_approved=True,
    )
    db.add(organizer)
    await db.commit()
    await db.refresh(organizer)
    logger.info(f"Organizer account created: {organizer.id} ({email})")

    email_sent = await _send_credentials(organizer, password)
    return organizer, password, email_sent


async def remove_organizer(db: AsyncSession, organizer_id: int, permanent: bool = False) -> str:
    organizer = await _get_organizer(db, organizer_id)
    if permanent:
        await db.delete(organizer)
        await db.commit()
        logger.info(f"Organizer {organizer_id} permanently deleted")
        return "Organizer permanently deleted"

    organizer.is_approved = False
    await db.commit()
    logger.info(f"Organizer {organizer_id} disabled")
    return "Organizer account disabled"


async def enable_organizer(db: AsyncSession, organizer_id: int) -> User:
    organizer = await _get_organizer(db, organizer_id)
    organizer.is_approved = True
    await db.commit()
    await db.refresh(organizer)
    return organizer


async def create_reset_request(db: AsyncSession, organizer: User, reason: str) -> PasswordResetRequest:
    """
    File a password reset request. Only one may be pending per organizer.

    Raises:
        Conflict: ALREADY_EXISTS if a request is already pending
    """
    pending = await db.execute(
        select(PasswordResetRequest.id).where(
            PasswordResetRequest.organizer_id == organizer.id,
            PasswordResetRequest.status == ResetStatus.PENDING,
        )
    )
    if pending.scalar_one_or_none() is not None:
        raise Conflict(Reason.ALREADY_EXISTS, "You already have a pending password reset request")

    organizer_id = organizer.id
    request = PasswordResetRequest(organizer_id=organizer_id, reason=reason.strip(), status=ResetStatus.PENDING)
    db.add(request)
    organizer.password_reset_requested = True
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(Reason.ALREADY_EXISTS, "You already have a pending password reset request")

    await db.refresh(request)
    logger.info(f"Password reset requested by organizer {organizer_id}")
    return request


async def list_reset_history(db: AsyncSession, organizer: User) -> List[PasswordResetRequest]:
    result = await db.execute(
        select(PasswordResetRequest)
        .where(PasswordResetRequest.organizer_id == organizer.id)
        .order_by(PasswordResetRequest.created_on.desc())
    )
    return list(result.scalars().unique().all())


async def list_reset_requests(db: AsyncSession) -> List[PasswordResetRequest]:
    result = await db.execute(select(PasswordResetRequest).order_by(PasswordResetRequest.created_on.desc()))
    return list(result.scalars().unique().all())


async def _get_reset_request(db: AsyncSession, request_id: int) -> PasswordResetRequest:
    request = await db.get(PasswordResetRequest, request_id)
    if not request:
        raise NotFound("Request not found")
    return request


async def _close_request(db: AsyncSession, request_id: int, admin: User, **values) -> None:
    result = await db.execute(
        update(PasswordResetRequest)
        .where(PasswordResetRequest.id == request_id, PasswordResetRequest.status == ResetStatus.PENDING)
        .values(processed_by_id=admin.id, processed_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise Conflict(Reason.ALREADY_PROCESSED, "Request already processed")


async def approve_reset_request(
    db: AsyncSession, admin: User, request_id: int, admin_comment: Optional[str] = None
) -> Tuple[PasswordResetRequest, str, bool]:
    """Generate a new password for the organizer and close the request."""
    request = await _get_reset_request(db, request_id)
    organizer = request.organizer
    new_password = generate_temporary_password()

    await _close_request(
        db,
        request_id,
        admin,
        status=ResetStatus.APPROVED,
        admin_comment=admin_comment or "Request approved",
        temporary_password=new_password,
    )
    organizer.hashed_password = get_password_hash(new_password)
    organizer.password_reset_requested = False
    await db.commit()
    await db.refresh(request)
    logger.info(f"Password reset request {request_id} approved by admin {admin.id}")

    email_sent = await _send_credentials(organizer, new_password)
    return request, new_password, email_sent


async def reject_reset_request(
    db: AsyncSession, admin: User, request_id: int, admin_comment: Optional[str] = None
) -> PasswordResetRequest:
    request = await _get_reset_request(db, request_id)
    await _close_request(
        db,
        request_id,
        admin,
        status=ResetStatus.REJECTED,
        admin_comment=admin_comment or "Request rejected",
    )
    request.organizer.password_reset_requested = False
    await db.commit()
    await db.refresh(request)
    logger.info(f"Password reset request {request_id} rejected by admin {admin.id}")
    return request


async def clear_temporary_password(db: AsyncSession, request_id: int) -> None:
    request = await _get_reset_request(db, request_id)
    request.temporary_password = None
    await db.commit()


async def reset_organizer_password(db: AsyncSession, organizer_id: int) -> Tuple[str, bool]:
    """Direct reset without a request on file."""
    organizer = await _get_organizer(db, organizer_id)
    new_password = generate_temporary_password()
    organizer.hashed_password = get_password_hash(new_password)
    organizer.password_reset_requested = False
    await db.commit()
    logger.info(f"Password reset for organizer {organizer_id}")

    email_sent = await _send_credentials(organizer, new_password)
    return new_password, email_sent
