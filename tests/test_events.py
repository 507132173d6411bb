from datetime import timedelta

import pytest

from eventhub.auth.models import UserRole
from eventhub.common.db import utcnow
from eventhub.common.errors import NotFound, PermissionDenied, Reason, ValidationFailed
from eventhub.events import service as event_service
from eventhub.events.models import EventStatus, EventType
from eventhub.events.schemas import EventCreate, EventUpdate, FormField
from eventhub.registrations import service as registration_service

FORM = [
    {"field_name": "team", "label": "Team", "field_type": "text", "required": True, "options": [], "order": 0},
    {"field_name": "track", "label": "Track", "field_type": "dropdown", "required": False, "options": ["AI", "Web"], "order": 1},
]


def _create_payload(**fields):
    now = utcnow()
    data = {
        "event_name": "Robotics Workshop",
        "event_description": "Build a line follower",
        "event_type": "normal",
        "event_tags": ["robotics"],
        "registration_deadline": now + timedelta(days=2),
        "event_start_date": now + timedelta(days=3),
        "event_end_date": now + timedelta(days=3, hours=4),
        "registration_limit": 40,
    }
    data.update(fields)
    return EventCreate(**data)


async def test_create_event_starts_as_draft(db, make_user):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await event_service.create_event(db, organizer, _create_payload())

    assert event.status == EventStatus.DRAFT
    assert event.organizer_id == organizer.id
    assert event.form_locked is False
    assert event.total_registrations == 0


async def test_unapproved_organizer_cannot_create(db, make_user):
    organizer = await make_user(UserRole.ORGANIZER, is_approved=False)
    with pytest.raises(PermissionDenied):
        await event_service.create_event(db, organizer, _create_payload())


def test_create_payload_validation():
    with pytest.raises(ValueError):
        _create_payload(event_end_date=utcnow())
    with pytest.raises(ValueError):
        _create_payload(event_type="merchandise")
    with pytest.raises(ValueError):
        FormField(field_name="track", label="Track", field_type="dropdown")


async def test_draft_allows_full_edit(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer, status=EventStatus.DRAFT)

    updated = await event_service.update_event(
        db, organizer, event.id, EventUpdate(event_name="Renamed", venue="Lab 2", custom_form=FORM)
    )
    assert updated.event_name == "Renamed"
    assert updated.venue == "Lab 2"
    assert [f["field_name"] for f in updated.custom_form] == ["team", "track"]


async def test_published_edit_is_restricted(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer)

    with pytest.raises(ValidationFailed) as exc:
        await event_service.update_event(db, organizer, event.id, EventUpdate(event_name="Nope"))
    assert exc.value.reason == Reason.EDIT_NOT_ALLOWED
    assert exc.value.detail["fields"] == ["event_name"]

    updated = await event_service.update_event(db, organizer, event.id, EventUpdate(event_description="More detail"))
    assert updated.event_description == "More detail"


@pytest.mark.parametrize("status", [EventStatus.ONGOING, EventStatus.COMPLETED, EventStatus.CLOSED])
async def test_running_events_cannot_be_edited(db, make_user, make_event, status):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer, status=status)
    with pytest.raises(ValidationFailed) as exc:
        await event_service.update_event(db, organizer, event.id, EventUpdate(event_description="x"))
    assert exc.value.reason == Reason.EDIT_NOT_ALLOWED


async def test_form_locks_after_first_registration(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    event = await make_event(organizer, custom_form=FORM)
    await registration_service.register_for_event(db, participant, event.id, {"team": "Rockets"})
    await db.refresh(event)
    assert event.form_locked is True

    reordered = [dict(FORM[1], order=0), dict(FORM[0], order=1)]
    updated = await event_service.update_event(db, organizer, event.id, EventUpdate(custom_form=reordered))
    assert [f["field_name"] for f in updated.custom_form] == ["track", "team"]

    extra = FORM + [{"field_name": "diet", "label": "Diet", "field_type": "text", "required": False, "options": [], "order": 2}]
    with pytest.raises(ValidationFailed) as exc:
        await event_service.update_event(db, organizer, event.id, EventUpdate(custom_form=extra))
    assert exc.value.reason == Reason.FORM_LOCKED


async def test_limit_cannot_drop_below_registrations(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer, registration_limit=5)
    event_id = event.id
    for _ in range(2):
        participant = await make_user()
        await registration_service.register_for_event(db, participant, event.id)

    with pytest.raises(ValidationFailed):
        await event_service.update_event(db, organizer, event_id, EventUpdate(registration_limit=1))

    await db.refresh(organizer)
    updated = await event_service.update_event(db, organizer, event_id, EventUpdate(registration_limit=2))
    assert updated.registration_limit == 2
    updated = await event_service.update_event(db, organizer, event_id, EventUpdate(registration_limit=0))
    assert updated.registration_limit == 0


async def test_only_owner_edits(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    rival = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer)
    with pytest.raises(PermissionDenied):
        await event_service.update_event(db, rival, event.id, EventUpdate(event_description="x"))
    with pytest.raises(NotFound):
        await event_service.update_event(db, organizer, 4242, EventUpdate(event_description="x"))


async def test_status_lifecycle(db, make_user, make_event, outbound):
    organizer = await make_user(UserRole.ORGANIZER, discord_webhook="https://discord.example/webhook")
    event = await make_event(organizer, status=EventStatus.DRAFT)

    published = await event_service.change_status(db, organizer, event.id, EventStatus.PUBLISHED)
    assert published.status == EventStatus.PUBLISHED
    assert outbound["discord"] == [("https://discord.example/webhook", event.id)]

    with pytest.raises(ValidationFailed) as exc:
        await event_service.change_status(db, organizer, event.id, EventStatus.DRAFT)
    assert exc.value.reason == Reason.INVALID_TRANSITION

    for status in (EventStatus.ONGOING, EventStatus.COMPLETED, EventStatus.CLOSED):
        event = await event_service.change_status(db, organizer, event.id, status)
        assert event.status == status

    with pytest.raises(ValidationFailed):
        await event_service.change_status(db, organizer, event.id, EventStatus.PUBLISHED)


async def test_published_event_can_complete_without_going_live(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer)

    completed = await event_service.change_status(db, organizer, event.id, EventStatus.COMPLETED)
    assert completed.status == EventStatus.COMPLETED


async def test_view_counts_and_hides_drafts(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    event = await make_event(organizer, registration_limit=3)
    draft = await make_event(organizer, status=EventStatus.DRAFT)

    detail = await event_service.view_event(db, participant, event.id)
    assert detail["event"].views == 1
    assert detail["is_registered"] is False
    assert detail["spots_left"] == 3

    await registration_service.register_for_event(db, participant, event.id)
    detail = await event_service.view_event(db, participant, event.id)
    assert detail["event"].views == 2
    assert detail["is_registered"] is True
    assert detail["spots_left"] == 2

    with pytest.raises(NotFound):
        await event_service.view_event(db, participant, draft.id)
    assert (await event_service.view_event(db, organizer, draft.id))["event"].id == draft.id


async def test_browse_and_relevance(db, make_user, make_event):
    followed = await make_user(UserRole.ORGANIZER)
    other = await make_user(UserRole.ORGANIZER)
    participant = await make_user(areas_of_interest=["Music", "coding"])
    participant.followed_organizers.append(followed)
    await db.commit()

    music = await make_event(other, event_name="Battle of Bands", event_tags=["music"])
    coding = await make_event(followed, event_name="Code Golf", event_tags=["coding", "music"])
    await make_event(other, event_name="Quiz", event_tags=["trivia"])
    await make_event(other, event_name="Secret", status=EventStatus.DRAFT)
    await make_event(other, event_name="Tee", event_type=EventType.MERCHANDISE)

    ranked = await event_service.browse_events(db, participant, sort_by="relevant")
    scores = {e.event_name: score for e, score in ranked}
    assert ranked[0][0].id == coding.id
    assert scores["Code Golf"] == 40
    assert scores["Battle of Bands"] == 10
    assert scores["Quiz"] == 0
    assert "Secret" not in scores

    found = await event_service.browse_events(db, participant, search="BANDS")
    assert [e.id for e, _ in found] == [music.id]

    followed_only = await event_service.browse_events(db, participant, followed_only=True)
    assert [e.id for e, _ in followed_only] == [coding.id]

    merch = await event_service.browse_events(db, participant, event_type=EventType.MERCHANDISE)
    assert [e.event_name for e, _ in merch] == ["Tee"]

    with pytest.raises(ValidationFailed):
        await event_service.browse_events(db, participant, status=EventStatus.DRAFT)


async def test_recommended_and_trending(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user(areas_of_interest=["coding"])
    now = utcnow()

    soon = await make_event(organizer, event_name="Soon", event_tags=[], event_start_date=now + timedelta(days=2))
    tagged = await make_event(
        organizer,
        event_name="Tagged",
        event_tags=["coding"],
        event_start_date=now + timedelta(days=60),
        event_end_date=now + timedelta(days=61),
    )
    await make_event(
        organizer,
        event_name="Far",
        event_tags=[],
        event_start_date=now + timedelta(days=90),
        event_end_date=now + timedelta(days=91),
    )

    recommended = await event_service.recommended_events(db, participant)
    names = [e.event_name for e, _ in recommended]
    assert names == ["Soon", "Tagged"]
    assert dict((e.id, s) for e, s in recommended)[soon.id] == 28
    assert dict((e.id, s) for e, s in recommended)[tagged.id] == 10

    for _ in range(3):
        await event_service.view_event(db, participant, tagged.id)
    trending = await event_service.trending_events(db)
    assert trending[0].id == tagged.id
    assert len(trending) == 3
