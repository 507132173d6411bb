"""Per-event discussion forum: threads, announcements, reactions and moderation."""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from eventhub.auth.models import User, UserRole
from eventhub.common.db import utcnow
from eventhub.common.errors import Conflict, NotFound, PermissionDenied, Reason
from eventhub.common.permissions import Capability, authorize, is_event_owner
from eventhub.events.models import Event
from eventhub.forum.models import ForumMessage, ForumReaction, ReactionType
from eventhub.registrations.models import Registration, RegistrationStatus
from eventhub.registrations.service import get_event_or_404

logger = logging.getLogger(__name__)


async def _holds_registration(db: AsyncSession, event_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(Registration.id).where(
            Registration.event_id == event_id,
            Registration.participant_id == user_id,
            Registration.registration_status == RegistrationStatus.REGISTERED,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def ensure_forum_access(db: AsyncSession, user: User, event: Event) -> bool:
    """
    Allow the owning organizer or a participant registered for the event.

    Returns:
        True when ``user`` is the event owner
    """
    if is_event_owner(user, event):
        return True
    if user.role == UserRole.PARTICIPANT and await _holds_registration(db, event.id, user.id):
        return False
    raise PermissionDenied("You must be registered for this event to access the forum")


async def _get_message(db: AsyncSession, event_id: int, message_id: int) -> ForumMessage:
    message = await db.get(ForumMessage, message_id)
    if not message or message.event_id != event_id or message.is_deleted:
        raise NotFound("Message not found")
    return message


async def list_messages(db: AsyncSession, user: User, event_id: int) -> List[Tuple[ForumMessage, int]]:
    """Top-level messages with their reply counts, pinned first then newest."""
    event = await get_event_or_404(db, event_id)
    await ensure_forum_access(db, user, event)

    replies = aliased(ForumMessage)
    reply_count = (
        select(func.count(replies.id))
        .where(replies.parent_id == ForumMessage.id, replies.is_deleted == False)  # noqa: E712
        .correlate(ForumMessage)
        .scalar_subquery()
    )
    result = await db.execute(
        select(ForumMessage, reply_count)
        .where(
            ForumMessage.event_id == event_id,
            ForumMessage.parent_id.is_(None),
            ForumMessage.is_deleted == False,  # noqa: E712
        )
        .order_by(ForumMessage.is_pinned.desc(), ForumMessage.created_on.desc(), ForumMessage.id.desc())
    )
    return [(message, count) for message, count in result.all()]


async def list_replies(db: AsyncSession, user: User, event_id: int, message_id: int) -> List[ForumMessage]:
    event = await get_event_or_404(db, event_id)
    await ensure_forum_access(db, user, event)
    await _get_message(db, event_id, message_id)

    result = await db.execute(
        select(ForumMessage)
        .where(
            ForumMessage.event_id == event_id,
            ForumMessage.parent_id == message_id,
            ForumMessage.is_deleted == False,  # noqa: E712
        )
        .order_by(ForumMessage.created_on, ForumMessage.id)
    )
    return list(result.scalars().all())


async def post_message(
    db: AsyncSession,
    user: User,
    event_id: int,
    content: str,
    parent_id: Optional[int] = None,
    is_announcement: bool = False,
) -> ForumMessage:
    """
    Post a message or a reply.

    Raises:
        PermissionDenied: If a non-owner posts an announcement
        NotFound: If the parent message is not a live message of this event
    """
    event = await get_event_or_404(db, event_id)
    is_owner = await ensure_forum_access(db, user, event)
    if is_announcement and not is_owner:
        raise PermissionDenied("Only organizers can post announcements")
    if parent_id is not None:
        await _get_message(db, event_id, parent_id)

    message = ForumMessage(
        event_id=event_id,
        author_id=user.id,
        author_role=user.role,
        content=content.strip(),
        parent_id=parent_id,
        is_announcement=is_announcement,
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message


async def delete_message(db: AsyncSession, organizer: User, event_id: int, message_id: int) -> None:
    """Soft delete; the row stays for moderation history."""
    event = await get_event_or_404(db, event_id)
    authorize(organizer, Capability.MANAGE_EVENT, event, message="Only organizers can delete messages")
    await _get_message(db, event_id, message_id)

    result = await db.execute(
        update(ForumMessage)
        .where(ForumMessage.id == message_id, ForumMessage.is_deleted == False)  # noqa: E712
        .values(is_deleted=True, deleted_by_id=organizer.id, deleted_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise NotFound("Message not found")
    await db.commit()
    logger.info(f"Forum message {message_id} deleted by organizer {organizer.id}")


async def toggle_pin(db: AsyncSession, organizer: User, event_id: int, message_id: int) -> ForumMessage:
    event = await get_event_or_404(db, event_id)
    authorize(organizer, Capability.MANAGE_EVENT, event, message="Only organizers can pin messages")
    message = await _get_message(db, event_id, message_id)

    await db.execute(
        update(ForumMessage)
        .where(ForumMessage.id == message_id)
        .values(is_pinned=not_(ForumMessage.is_pinned))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(message)
    return message


async def react(
    db: AsyncSession, user: User, event_id: int, message_id: int, reaction_type: ReactionType
) -> ForumMessage:
    """
    Toggle a reaction. Repeating the same reaction removes it; a different
    one replaces the user's previous reaction.
    """
    event = await get_event_or_404(db, event_id)
    await ensure_forum_access(db, user, event)
    message = await _get_message(db, event_id, message_id)

    result = await db.execute(
        select(ForumReaction).where(ForumReaction.message_id == message_id, ForumReaction.user_id == user.id)
    )
    existing = result.scalar_one_or_none()
    if existing is None:
        db.add(ForumReaction(message_id=message_id, user_id=user.id, type=reaction_type))
    elif existing.type == reaction_type:
        await db.delete(existing)
    else:
        existing.type = reaction_type

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(Reason.ALREADY_EXISTS, "Reaction already recorded")

    await db.refresh(message, attribute_names=["reactions"])
    return message
