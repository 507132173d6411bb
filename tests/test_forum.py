import pytest

from eventhub.auth.models import UserRole
from eventhub.common.errors import NotFound, PermissionDenied
from eventhub.forum import service as forum_service
from eventhub.forum.models import ReactionType
from eventhub.registrations import service as registration_service


@pytest.fixture
async def forum(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    member = await make_user()
    event = await make_event(organizer)
    await registration_service.register_for_event(db, member, event.id)
    return organizer, member, event


async def test_only_owner_and_registered_participants_get_in(db, make_user, forum):
    organizer, member, event = forum
    stranger = await make_user()
    rival = await make_user(UserRole.ORGANIZER)

    assert await forum_service.ensure_forum_access(db, organizer, event) is True
    assert await forum_service.ensure_forum_access(db, member, event) is False
    with pytest.raises(PermissionDenied):
        await forum_service.list_messages(db, stranger, event.id)
    with pytest.raises(PermissionDenied):
        await forum_service.post_message(db, rival, event.id, "hello")


async def test_threads_and_ordering(db, forum):
    organizer, member, event = forum

    question = await forum_service.post_message(db, member, event.id, "  When do doors open?  ")
    notice = await forum_service.post_message(db, organizer, event.id, "Venue moved", is_announcement=True)
    await forum_service.post_message(db, organizer, event.id, "6 PM", parent_id=question.id)
    await forum_service.post_message(db, member, event.id, "Thanks!", parent_id=question.id)

    assert question.content == "When do doors open?"
    assert question.author_role == UserRole.PARTICIPANT

    listed = await forum_service.list_messages(db, member, event.id)
    assert [(m.id, count) for m, count in listed] == [(notice.id, 0), (question.id, 2)]

    await forum_service.toggle_pin(db, organizer, event.id, question.id)
    listed = await forum_service.list_messages(db, member, event.id)
    assert listed[0][0].id == question.id
    assert listed[0][0].is_pinned is True

    replies = await forum_service.list_replies(db, member, event.id, question.id)
    assert [r.content for r in replies] == ["6 PM", "Thanks!"]


async def test_participants_cannot_announce(db, forum):
    organizer, member, event = forum
    with pytest.raises(PermissionDenied):
        await forum_service.post_message(db, member, event.id, "Free pizza", is_announcement=True)


async def test_reply_parent_must_belong_to_event(db, make_event, forum):
    organizer, member, event = forum
    other = await make_event(organizer)
    elsewhere = await forum_service.post_message(db, organizer, other.id, "Other thread")

    with pytest.raises(NotFound):
        await forum_service.post_message(db, member, event.id, "Reply", parent_id=elsewhere.id)


async def test_soft_delete_hides_message(db, forum):
    organizer, member, event = forum
    message = await forum_service.post_message(db, member, event.id, "Spam")

    with pytest.raises(PermissionDenied):
        await forum_service.delete_message(db, member, event.id, message.id)

    await forum_service.delete_message(db, organizer, event.id, message.id)
    await db.refresh(message)
    assert message.is_deleted is True
    assert message.deleted_by_id == organizer.id
    assert await forum_service.list_messages(db, member, event.id) == []

    with pytest.raises(NotFound):
        await forum_service.delete_message(db, organizer, event.id, message.id)
    with pytest.raises(NotFound):
        await forum_service.react(db, member, event.id, message.id, ReactionType.LIKE)


async def test_reactions_toggle_and_replace(db, forum):
    organizer, member, event = forum
    message = await forum_service.post_message(db, organizer, event.id, "Welcome all")

    reacted = await forum_service.react(db, member, event.id, message.id, ReactionType.LIKE)
    assert [(r.user_id, r.type) for r in reacted.reactions] == [(member.id, ReactionType.LIKE)]

    reacted = await forum_service.react(db, member, event.id, message.id, ReactionType.HEART)
    assert [r.type for r in reacted.reactions] == [ReactionType.HEART]

    await forum_service.react(db, organizer, event.id, message.id, ReactionType.THUMBSUP)
    reacted = await forum_service.react(db, member, event.id, message.id, ReactionType.HEART)
    assert [(r.user_id, r.type) for r in reacted.reactions] == [(organizer.id, ReactionType.THUMBSUP)]
