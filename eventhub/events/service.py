"""Event service layer: authoring, lifecycle and discovery."""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User, UserRole
from eventhub.common.config import get_settings
from eventhub.common.db import atomic, utcnow
from eventhub.common.errors import NotFound, Reason, ValidationFailed
from eventhub.common.permissions import Capability, authorize, is_event_owner
from eventhub.events.models import Eligibility, Event, EventStatus, EventType, MerchandiseVariant
from eventhub.events.schemas import EventCreate, EventUpdate, VariantCreate
from eventhub.notifications.discord import post_event_to_discord
from eventhub.registrations import ledger
from eventhub.registrations.models import Registration, RegistrationStatus

settings = get_settings()
logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    EventStatus.DRAFT: {EventStatus.PUBLISHED},
    EventStatus.PUBLISHED: {EventStatus.ONGOING, EventStatus.COMPLETED, EventStatus.CLOSED},
    EventStatus.ONGOING: {EventStatus.COMPLETED, EventStatus.CLOSED},
    EventStatus.COMPLETED: {EventStatus.CLOSED},
    EventStatus.CLOSED: set(),
}

# Fields an organizer may still change once participants can see the event.
PUBLISHED_EDITABLE = {"event_description", "registration_deadline", "registration_limit", "custom_form"}

RECOMMENDED_LIMIT = 10
TRENDING_LIMIT = 5


def _variants_from(data: List[VariantCreate]) -> List[MerchandiseVariant]:
    return [
        MerchandiseVariant(position=i, size=v.size, color=v.color, stock_quantity=v.stock_quantity, sold=0)
        for i, v in enumerate(data)
    ]


def _form_signature(form: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Field definitions with ordering stripped, sorted by name."""
    fields = [{k: v for k, v in field.items() if k != "order"} for field in form or []]
    return sorted(fields, key=lambda f: f.get("field_name", ""))


def forms_equivalent(current: Optional[List[Dict[str, Any]]], proposed: Optional[List[Dict[str, Any]]]) -> bool:
    """True when ``proposed`` only reorders the fields of ``current``."""
    return _form_signature(current) == _form_signature(proposed)


async def get_owned_event(db: AsyncSession, organizer: User, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    authorize(organizer, Capability.MANAGE_EVENT, event, message="Not authorized for this event")
    return event


async def create_event(db: AsyncSession, organizer: User, data: EventCreate) -> Event:
    """Create a draft event owned by ``organizer``."""
    authorize(organizer, Capability.CREATE_EVENT, message="Only approved organizers can create events")

    event = Event(
        organizer_id=organizer.id,
        event_name=data.event_name,
        event_description=data.event_description,
        event_type=data.event_type,
        eligibility=data.eligibility,
        event_tags=data.event_tags,
        venue=data.venue,
        registration_deadline=data.registration_deadline,
        event_start_date=data.event_start_date,
        event_end_date=data.event_end_date,
        registration_limit=data.registration_limit,
        registration_fee=data.registration_fee,
        status=EventStatus.DRAFT,
        custom_form=[f.model_dump(mode="json") for f in data.custom_form],
        form_locked=False,
        item_name=data.item_name,
        purchase_limit_per_participant=data.purchase_limit_per_participant,
        variants=_variants_from(data.variants) if data.event_type == EventType.MERCHANDISE else [],
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)

    logger.info(f"Organizer {organizer.id} created draft event {event.id}")
    return event


async def update_event(db: AsyncSession, organizer: User, event_id: int, data: EventUpdate) -> Event:
    """
    Apply an edit within what the event's status allows.

    Drafts can change anything. Published events can change the description,
    deadline, limit and (until the first registration) the form; after the
    first registration the form can only be reordered.

    Raises:
        NotFound: If the event does not exist
        PermissionDenied: If the organizer does not own it
        ValidationFailed: EDIT_NOT_ALLOWED, FORM_LOCKED or inconsistent values
    """
    event = await get_owned_event(db, organizer, event_id)
    changes = data.model_dump(exclude_unset=True)

    if event.status == EventStatus.PUBLISHED:
        disallowed = sorted(set(changes) - PUBLISHED_EDITABLE)
        if disallowed:
            raise ValidationFailed(
                Reason.EDIT_NOT_ALLOWED,
                f"Published events only allow editing: {', '.join(sorted(PUBLISHED_EDITABLE))}",
                extra={"fields": disallowed},
            )
    elif event.status != EventStatus.DRAFT:
        raise ValidationFailed(Reason.EDIT_NOT_ALLOWED, "Cannot edit ongoing, completed or closed events")

    start = changes.get("event_start_date") or event.event_start_date
    end = changes.get("event_end_date") or event.event_end_date
    if end < start:
        raise ValidationFailed(Reason.INVALID_INPUT, "Event end date must be after the start date")

    async with atomic(db):
        if "custom_form" in changes:
            new_form = [f.model_dump(mode="json") for f in data.custom_form or []]
            stmt = update(Event).where(Event.id == event_id)
            if not forms_equivalent(event.custom_form, new_form):
                stmt = stmt.where(Event.form_locked == False)  # noqa: E712
            result = await db.execute(
                stmt.values(custom_form=new_form).execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ValidationFailed(
                    Reason.FORM_LOCKED,
                    "Form is locked after the first registration; fields can only be reordered",
                )

        if "registration_limit" in changes:
            await ledger.set_registration_limit(db, event_id, changes["registration_limit"])

        if "variants" in changes:
            event.variants.clear()
            await db.flush()
            event.variants.extend(_variants_from(data.variants or []))

        for field, value in changes.items():
            if field in ("custom_form", "registration_limit", "variants"):
                continue
            setattr(event, field, value)

    await db.refresh(event)
    logger.info(f"Event {event_id} updated by organizer {organizer.id}: {sorted(changes)}")
    return event


async def _transition(db: AsyncSession, event: Event, new_status: EventStatus) -> None:
    current = event.status
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise ValidationFailed(
            Reason.INVALID_TRANSITION,
            f"Cannot change status from {current.value} to {new_status.value}",
        )
    async with atomic(db):
        result = await db.execute(
            update(Event)
            .where(Event.id == event.id, Event.status == current)
            .values(status=new_status, updated_on=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ValidationFailed(Reason.INVALID_TRANSITION, "Event status changed concurrently; reload and retry")
    await db.refresh(event)


async def publish_event(db: AsyncSession, organizer: User, event_id: int) -> Event:
    """Publish a draft and announce it on the organizer's Discord webhook, if any."""
    event = await get_owned_event(db, organizer, event_id)
    if event.status != EventStatus.DRAFT:
        raise ValidationFailed(Reason.INVALID_TRANSITION, "Only draft events can be published")
    await _transition(db, event, EventStatus.PUBLISHED)
    logger.info(f"Event {event_id} published")

    webhook = event.organizer.discord_webhook if event.organizer else None
    if webhook:
        posted = await run_in_threadpool(post_event_to_discord, webhook, event)
        if not posted:
            logger.warning(f"Discord announcement for event {event_id} was not delivered")
    return event


async def change_status(db: AsyncSession, organizer: User, event_id: int, new_status: EventStatus) -> Event:
    if new_status == EventStatus.PUBLISHED:
        return await publish_event(db, organizer, event_id)
    event = await get_owned_event(db, organizer, event_id)
    await _transition(db, event, new_status)
    logger.info(f"Event {event_id} moved to {new_status.value}")
    return event


def relevance_score(event: Event, participant: Optional[User]) -> int:
    """10 per tag matching an interest, 20 if the organizer is followed."""
    if participant is None:
        return 0
    interests = {i.lower() for i in participant.areas_of_interest or []}
    score = sum(10 for tag in event.event_tags or [] if tag.lower() in interests)
    if event.organizer_id in participant.followed_organizer_ids:
        score += 20
    return score


def _matches_search(event: Event, term: str) -> bool:
    term = term.lower()
    haystack = [event.event_name, event.event_description, *(event.event_tags or [])]
    return any(term in (text or "").lower() for text in haystack)


async def browse_events(
    db: AsyncSession,
    viewer: User,
    search: Optional[str] = None,
    event_type: Optional[EventType] = None,
    eligibility: Optional[Eligibility] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    followed_only: bool = False,
    status: EventStatus = EventStatus.PUBLISHED,
    sort_by: str = "recent",
) -> List[Tuple[Event, Optional[int]]]:
    """
    Filtered event listing.

    Returns (event, relevance score) pairs; the score is only computed for
    participants sorting by relevance.
    """
    if status == EventStatus.DRAFT:
        raise ValidationFailed(Reason.INVALID_INPUT, "Draft events are not listed")

    participant = viewer if viewer.role == UserRole.PARTICIPANT else None
    query = select(Event).where(Event.status == status)
    if event_type:
        query = query.where(Event.event_type == event_type)
    if eligibility:
        query = query.where(Event.eligibility == eligibility)
    if start_date:
        query = query.where(Event.event_start_date >= start_date)
    if end_date:
        query = query.where(Event.event_start_date <= end_date)
    if followed_only and participant and participant.followed_organizer_ids:
        query = query.where(Event.organizer_id.in_(participant.followed_organizer_ids))

    result = await db.execute(query.order_by(Event.created_on.desc()))
    events = list(result.scalars().unique().all())
    if search:
        events = [e for e in events if _matches_search(e, search.strip())]
    events = events[: settings.browse_limit]

    if sort_by == "relevant" and participant:
        scored = [(e, relevance_score(e, participant)) for e in events]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored
    if sort_by == "popular":
        events.sort(key=lambda e: e.views, reverse=True)
    return [(e, None) for e in events]


async def trending_events(db: AsyncSession) -> List[Event]:
    """Top published events by views within the trending window."""
    since = utcnow() - timedelta(hours=settings.trending_window_hours)
    result = await db.execute(
        select(Event)
        .where(Event.status == EventStatus.PUBLISHED, Event.last_view_reset >= since)
        .order_by(Event.views.desc())
        .limit(TRENDING_LIMIT)
    )
    return list(result.scalars().unique().all())


def recommendation_score(event: Event, participant: User, now: datetime) -> int:
    score = relevance_score(event, participant)
    days_until = math.ceil((event.event_start_date - now).total_seconds() / 86400)
    if 0 < days_until <= 30:
        score += 30 - days_until
    return score


async def recommended_events(db: AsyncSession, participant: User) -> List[Tuple[Event, int]]:
    result = await db.execute(select(Event).where(Event.status == EventStatus.PUBLISHED))
    now = utcnow()
    scored = [(e, recommendation_score(e, participant, now)) for e in result.scalars().unique().all()]
    scored = [pair for pair in scored if pair[1] > 0]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:RECOMMENDED_LIMIT]


async def view_event(db: AsyncSession, viewer: User, event_id: int) -> Dict[str, Any]:
    """
    Event detail for any signed-in user. Each view is counted.

    Drafts are only visible to their owner.
    """
    event = await db.get(Event, event_id)
    if not event or (event.status == EventStatus.DRAFT and not is_event_owner(viewer, event)):
        raise NotFound("Event not found")

    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(views=Event.views + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(event)

    is_registered = False
    if viewer.role == UserRole.PARTICIPANT:
        found = await db.execute(
            select(Registration.id).where(
                Registration.event_id == event_id,
                Registration.participant_id == viewer.id,
                Registration.registration_status == RegistrationStatus.REGISTERED,
            ).limit(1)
        )
        is_registered = found.scalar_one_or_none() is not None

    spots_left = None
    if event.registration_limit > 0:
        spots_left = max(0, event.registration_limit - event.total_registrations)

    return {"event": event, "is_registered": is_registered, "spots_left": spots_left}
