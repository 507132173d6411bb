import pytest

from eventhub.auth.models import UserRole
from eventhub.auth.schemas import ParticipantProfileUpdate
from eventhub.common.errors import Conflict, NotFound, ValidationFailed
from eventhub.events.models import EventStatus, EventType
from eventhub.participants import service as participant_service
from eventhub.registrations import service as registration_service

PROOF = "/uploads/payment-proofs/payment-test.png"


async def test_follow_and_unfollow(db, make_user):
    club = await make_user(UserRole.ORGANIZER)
    disabled = await make_user(UserRole.ORGANIZER, is_approved=False)
    participant = await make_user()

    await participant_service.follow_organizer(db, participant, club.id)
    assert participant.followed_organizer_ids == [club.id]

    with pytest.raises(Conflict):
        await participant_service.follow_organizer(db, participant, club.id)
    with pytest.raises(NotFound):
        await participant_service.follow_organizer(db, participant, disabled.id)

    await participant_service.unfollow_organizer(db, participant, club.id)
    assert participant.followed_organizer_ids == []
    with pytest.raises(ValidationFailed):
        await participant_service.unfollow_organizer(db, participant, club.id)


async def test_dashboard_groups_history(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    talk = await make_event(organizer, event_name="Talk")
    cancelled = await make_event(organizer, event_name="Cancelled")
    shop = await make_event(organizer, event_type=EventType.MERCHANDISE)

    await registration_service.register_for_event(db, participant, talk.id)
    dropped = await registration_service.register_for_event(db, participant, cancelled.id)
    await registration_service.cancel_registration(db, participant, dropped.id)
    await registration_service.purchase_merchandise(db, participant, shop.id, 0, 1, PROOF)

    dashboard = await participant_service.get_dashboard(db, participant)

    assert sorted(r.event.event_name for r in dashboard["upcoming"]) == ["Fest T-shirt", "Talk"]
    assert len(dashboard["history"]["normal"]) == 2
    assert len(dashboard["history"]["merchandise"]) == 1
    assert [r.event_id for r in dashboard["history"]["cancelled"]] == [cancelled.id]
    assert dashboard["history"]["completed"] == []


async def test_organizer_directory(db, make_user, make_event):
    music = await make_user(UserRole.ORGANIZER, organizer_name="Music Club", category="Cultural")
    await make_user(UserRole.ORGANIZER, organizer_name="Chess Club", category="Sports")
    await make_user(UserRole.ORGANIZER, organizer_name="Hidden Club", is_approved=False)
    await make_event(music)
    await make_event(music, status=EventStatus.DRAFT)
    await make_event(music, status=EventStatus.COMPLETED)

    listed = await participant_service.list_organizers(db)
    assert [item["organizer"].organizer_name for item in listed] == ["Chess Club", "Music Club"]
    assert listed[1]["event_count"] == 2

    found = await participant_service.list_organizers(db, search="music")
    assert [item["organizer"].id for item in found] == [music.id]
    assert await participant_service.list_organizers(db, category="Technical") == []

    detail = await participant_service.get_organizer_detail(db, music.id)
    assert len(detail["upcoming_events"]) == 1
    assert len(detail["past_events"]) == 1


async def test_update_profile_ignores_email_and_type(db, make_user):
    participant = await make_user()
    updated = await participant_service.update_profile(
        db, participant, ParticipantProfileUpdate(first_name="Meera", areas_of_interest=["dance"])
    )
    assert updated.first_name == "Meera"
    assert updated.areas_of_interest == ["dance"]
    assert updated.email.endswith("@iiit.ac.in")
