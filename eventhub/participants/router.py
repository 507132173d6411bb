"""Participant router - endpoints for signed-in participants."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth import schemas as auth_schema
from eventhub.auth.models import User
from eventhub.auth.service import AuthService
from eventhub.common.db import get_async_db
from eventhub.common.schemas import Message
from eventhub.common.security import require_role
from eventhub.participants import schemas as participant_schema
from eventhub.participants import service as participant_service
from eventhub.registrations import schemas as reg_schema
from eventhub.registrations import service as reg_service

router = APIRouter()

get_current_participant = require_role("participant")


def _tickets(registrations) -> List[reg_schema.TicketRead]:
    return [reg_schema.TicketRead.model_validate(r) for r in registrations]


@router.get("/dashboard", response_model=participant_schema.ParticipantDashboard)
async def dashboard(
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    data = await participant_service.get_dashboard(db, current_user)
    return participant_schema.ParticipantDashboard(
        upcoming=_tickets(data["upcoming"]),
        history={group: _tickets(items) for group, items in data["history"].items()},
    )


@router.get("/profile", response_model=auth_schema.ParticipantProfile)
async def get_profile(current_user: User = Depends(get_current_participant)):
    return current_user


@router.put("/profile", response_model=auth_schema.ParticipantProfile)
async def update_profile(
    payload: auth_schema.ParticipantProfileUpdate,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    """Update name, contact, college and interests. Email and participant type are fixed."""
    return await participant_service.update_profile(db, current_user, payload)


@router.put("/change-password", response_model=Message)
async def change_password(
    payload: auth_schema.PasswordChange,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    await AuthService(db).change_password(current_user, payload.current_password, payload.new_password)
    return Message(message="Password changed successfully")


@router.post("/follow/{organizer_id}", response_model=Message)
async def follow(
    organizer_id: int,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    await participant_service.follow_organizer(db, current_user, organizer_id)
    return Message(message="Followed successfully")


@router.delete("/follow/{organizer_id}", response_model=Message)
async def unfollow(
    organizer_id: int,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    await participant_service.unfollow_organizer(db, current_user, organizer_id)
    return Message(message="Unfollowed successfully")


@router.get("/organizers", response_model=List[participant_schema.OrganizerListItem])
async def list_organizers(
    search: Optional[str] = None,
    category: Optional[str] = None,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    rows = await participant_service.list_organizers(db, search=search, category=category)
    items = []
    for row in rows:
        item = participant_schema.OrganizerListItem.model_validate(row["organizer"], from_attributes=True)
        item.event_count = row["event_count"]
        items.append(item)
    return items


@router.get("/organizers/{organizer_id}", response_model=participant_schema.OrganizerDetail)
async def organizer_detail(
    organizer_id: int,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    return participant_schema.OrganizerDetail.model_validate(
        await participant_service.get_organizer_detail(db, organizer_id), from_attributes=True
    )


@router.get("/tickets", response_model=List[reg_schema.TicketRead])
async def list_tickets(
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    return _tickets(await reg_service.list_tickets(db, current_user))


@router.get("/tickets/{ticket_id}", response_model=reg_schema.TicketRead)
async def get_ticket(
    ticket_id: str,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    return reg_schema.TicketRead.model_validate(await reg_service.get_ticket(db, current_user, ticket_id))


@router.put("/registrations/{registration_id}/cancel", response_model=reg_schema.RegistrationRead)
async def cancel_registration(
    registration_id: int,
    current_user: User = Depends(get_current_participant),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel a registration before the event starts."""
    registration = await reg_service.cancel_registration(db, current_user, registration_id)
    return reg_schema.RegistrationRead.model_validate(registration)
