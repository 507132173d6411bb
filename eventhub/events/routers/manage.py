"""Organizer endpoints for authoring events and moving them through their lifecycle."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import get_async_db
from eventhub.common.security import require_role
from eventhub.events import schemas as event_schema
from eventhub.events import service as event_service

router = APIRouter()


@router.post("/", response_model=event_schema.EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: event_schema.EventCreate,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    """Create an event as a draft."""
    return await event_service.create_event(db, current_user, payload)


@router.put("/{event_id}", response_model=event_schema.EventRead)
async def update_event(
    event_id: int,
    payload: event_schema.EventUpdate,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Edit an event.

    Drafts accept any change. Published events accept description, deadline,
    limit and form changes; ongoing, completed and closed events accept none.
    """
    return await event_service.update_event(db, current_user, event_id, payload)


@router.put("/{event_id}/publish", response_model=event_schema.EventRead)
async def publish_event(
    event_id: int,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    return await event_service.publish_event(db, current_user, event_id)


@router.put("/{event_id}/status", response_model=event_schema.EventRead)
async def change_status(
    event_id: int,
    payload: event_schema.StatusUpdate,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    return await event_service.change_status(db, current_user, event_id, payload.status)
