"""Forum router, mounted under /api/events/{event_id}/forum."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import get_async_db
from eventhub.common.schemas import Message
from eventhub.common.security import get_current_user, require_role
from eventhub.forum import schemas as forum_schema
from eventhub.forum import service as forum_service

router = APIRouter()


def _read(message, reply_count: int = 0) -> forum_schema.ForumMessageRead:
    read = forum_schema.ForumMessageRead.model_validate(message)
    read.reply_count = reply_count
    return read


@router.get("", response_model=List[forum_schema.ForumMessageRead])
async def list_messages(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    rows = await forum_service.list_messages(db, current_user, event_id)
    return [_read(message, count) for message, count in rows]


@router.post("", response_model=forum_schema.ForumPostResponse)
async def post_message(
    event_id: int,
    payload: forum_schema.ForumMessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    message = await forum_service.post_message(
        db, current_user, event_id, payload.content, payload.parent_id, payload.is_announcement
    )
    return forum_schema.ForumPostResponse(message="Message posted successfully", forum_message=_read(message))


@router.delete("/{message_id}", response_model=Message)
async def delete_message(
    event_id: int,
    message_id: int,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    await forum_service.delete_message(db, current_user, event_id, message_id)
    return Message(message="Message deleted successfully")


@router.put("/{message_id}/pin", response_model=forum_schema.PinResponse)
async def toggle_pin(
    event_id: int,
    message_id: int,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    message = await forum_service.toggle_pin(db, current_user, event_id, message_id)
    return forum_schema.PinResponse(
        message="Message pinned" if message.is_pinned else "Message unpinned",
        is_pinned=message.is_pinned,
    )


@router.post("/{message_id}/react", response_model=forum_schema.ReactionResponse)
async def react(
    event_id: int,
    message_id: int,
    payload: forum_schema.ReactionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    message = await forum_service.react(db, current_user, event_id, message_id, payload.reaction_type)
    return forum_schema.ReactionResponse(
        message="Reaction updated",
        reactions=[forum_schema.ReactionRead.model_validate(r) for r in message.reactions],
    )


@router.get("/{message_id}/replies", response_model=List[forum_schema.ForumMessageRead])
async def list_replies(
    event_id: int,
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return [_read(m) for m in await forum_service.list_replies(db, current_user, event_id, message_id)]
