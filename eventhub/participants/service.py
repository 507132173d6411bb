"""Participant service layer - dashboard, profile and organizer follows."""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User, UserRole
from eventhub.auth.schemas import ParticipantProfileUpdate
from eventhub.common.db import utcnow
from eventhub.common.errors import Conflict, NotFound, Reason, ValidationFailed
from eventhub.events.models import Event, EventStatus, EventType
from eventhub.registrations.models import Registration, RegistrationStatus

VISIBLE_EVENT_STATUSES = (EventStatus.PUBLISHED, EventStatus.ONGOING, EventStatus.COMPLETED)


async def get_dashboard(db: AsyncSession, participant: User) -> Dict[str, Any]:
    """
    Upcoming tickets plus participation history.

    History is grouped into normal, merchandise, completed and cancelled
    (cancelled includes rejected orders).
    """
    result = await db.execute(
        select(Registration)
        .where(Registration.participant_id == participant.id)
        .order_by(Registration.created_on.desc())
    )
    registrations = list(result.scalars().unique().all())
    now = utcnow()

    upcoming = [
        r for r in registrations
        if r.registration_status == RegistrationStatus.REGISTERED and r.event.event_start_date >= now
    ]
    history = {
        "normal": [r for r in registrations if r.registration_type == EventType.NORMAL],
        "merchandise": [r for r in registrations if r.registration_type == EventType.MERCHANDISE],
        "completed": [r for r in registrations if r.event.status == EventStatus.COMPLETED],
        "cancelled": [
            r for r in registrations
            if r.registration_status in (RegistrationStatus.CANCELLED, RegistrationStatus.REJECTED)
        ],
    }
    return {"upcoming": upcoming, "history": history}


async def update_profile(db: AsyncSession, participant: User, data: ParticipantProfileUpdate) -> User:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field != "last_name":
            continue
        setattr(participant, field, value)
    await db.commit()
    await db.refresh(participant)
    return participant


async def _get_approved_organizer(db: AsyncSession, organizer_id: int) -> User:
    result = await db.execute(
        select(User).where(
            User.id == organizer_id,
            User.role == UserRole.ORGANIZER,
            User.is_approved == True,  # noqa: E712
        )
    )
    organizer = result.scalar_one_or_none()
    if not organizer:
        raise NotFound("Organizer not found")
    return organizer


async def follow_organizer(db: AsyncSession, participant: User, organizer_id: int) -> None:
    organizer = await _get_approved_organizer(db, organizer_id)
    if organizer_id in participant.followed_organizer_ids:
        raise Conflict(Reason.ALREADY_EXISTS, "Already following this organizer")
    participant.followed_organizers.append(organizer)
    await db.commit()


async def unfollow_organizer(db: AsyncSession, participant: User, organizer_id: int) -> None:
    for organizer in participant.followed_organizers:
        if organizer.id == organizer_id:
            participant.followed_organizers.remove(organizer)
            await db.commit()
            return
    raise ValidationFailed(Reason.INVALID_INPUT, "Not following this organizer")


async def list_organizers(
    db: AsyncSession,
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Approved organizers with a count of their visible events."""
    query = select(User).where(
        User.role == UserRole.ORGANIZER,
        User.is_approved == True,  # noqa: E712
    )
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(User.organizer_name.ilike(pattern), User.description.ilike(pattern)))
    if category:
        query = query.where(User.category == category)
    organizers = list((await db.execute(query.order_by(User.organizer_name))).scalars().all())

    counts = dict(
        (
            await db.execute(
                select(Event.organizer_id, func.count(Event.id))
                .where(Event.status.in_(VISIBLE_EVENT_STATUSES))
                .group_by(Event.organizer_id)
            )
        ).all()
    )
    return [{"organizer": o, "event_count": counts.get(o.id, 0)} for o in organizers]


async def get_organizer_detail(db: AsyncSession, organizer_id: int) -> Dict[str, Any]:
    organizer = await _get_approved_organizer(db, organizer_id)
    upcoming = await db.execute(
        select(Event)
        .where(
            Event.organizer_id == organizer_id,
            Event.status == EventStatus.PUBLISHED,
            Event.event_start_date >= utcnow(),
        )
        .order_by(Event.event_start_date)
    )
    past = await db.execute(
        select(Event)
        .where(
            Event.organizer_id == organizer_id,
            Event.status.in_([EventStatus.COMPLETED, EventStatus.CLOSED]),
        )
        .order_by(Event.event_start_date.desc())
    )
    return {
        "organizer": organizer,
        "upcoming_events": list(upcoming.scalars().unique().all()),
        "past_events": list(past.scalars().unique().all()),
    }
