import pytest
from sqlalchemy import select

from core.errors import Forbidden, NotFound
from models.message import Message
from models.request import STATUS_ACCEPTED, STATUS_REJECTED
from services import chat, notification_aggregator, request_workflow
from services.match_store import create_if_absent


@pytest.fixture
async def pair(db, make_user, make_idea):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    idea = await make_idea(alice, "CryptoChores")
    match, _ = await create_if_absent(db, alice.id, bob.id, idea.id)
    return alice, bob, idea, match


async def _types(db, user_id):
    feed = await notification_aggregator.list_notifications(db, user_id)
    return [n.type for n in feed.notifications]


async def test_one_message_notification_per_match(db, pair, make_idea):
    alice, bob, _, match = pair
    other_idea = await make_idea(bob, "DogWalkDAO")
    other_match, _ = await create_if_absent(db, alice.id, bob.id, other_idea.id)

    await chat.send_message(db, match.id, bob.id, "first")
    await chat.send_message(db, match.id, bob.id, "second")
    await chat.send_message(db, other_match.id, bob.id, "elsewhere")
    await chat.send_message(db, match.id, alice.id, "mine")

    feed = await notification_aggregator.list_notifications(db, alice.id)

    assert feed.unread_count == 2
    assert [n.data["content"] for n in feed.notifications] == ["elsewhere", "second"]
    latest = feed.notifications[1]
    assert latest.data["sender"]["name"] == "Bob"
    assert latest.data["other_user"]["name"] == "Bob"
    assert latest.data["match"]["idea"]["name"] == "CryptoChores"


async def test_request_sources(db, transport, make_user, make_idea):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    idea = await make_idea(alice, "CryptoChores")
    request = await request_workflow.create_request(db, transport, bob.id, idea.id, "let's build this")

    feed = await notification_aggregator.list_notifications(db, alice.id)
    [pending] = feed.notifications
    assert pending.type == "request"
    assert pending.data["requester"]["name"] == "Bob"
    assert pending.data["idea"]["name"] == "CryptoChores"
    assert await _types(db, bob.id) == []

    match, _ = await request_workflow.accept_request(db, transport, request.id, alice.id)

    assert await _types(db, alice.id) == []
    feed = await notification_aggregator.list_notifications(db, bob.id)
    [accepted] = feed.notifications
    assert accepted.type == "request_accepted"
    assert accepted.data["idea_owner"]["name"] == "Alice"
    assert accepted.data["match_id"] == match.id


async def test_newest_first_across_sources(db, transport, pair, make_user):
    alice, bob, idea, match = pair
    carol = await make_user("Carol")
    await chat.send_message(db, match.id, bob.id, "hello")
    await request_workflow.create_request(db, transport, carol.id, idea.id, "me too")

    assert await _types(db, alice.id) == ["request", "message"]


async def test_mark_read_single_message(db, pair):
    alice, bob, _, match = pair
    first = await chat.send_message(db, match.id, bob.id, "first")
    await chat.send_message(db, match.id, bob.id, "second")

    feed = await notification_aggregator.list_notifications(db, alice.id)
    latest = feed.notifications[0]
    await notification_aggregator.mark_read(db, latest.id, "message", alice.id)

    feed = await notification_aggregator.list_notifications(db, alice.id)
    assert [n.id for n in feed.notifications] == [first.id]


async def test_mark_read_guards(db, transport, pair, make_user):
    alice, bob, idea, match = pair
    carol = await make_user("Carol")
    own = await chat.send_message(db, match.id, alice.id, "mine")
    request = await request_workflow.create_request(db, transport, carol.id, idea.id, "hi")

    with pytest.raises(NotFound):
        await notification_aggregator.mark_read(db, own.id, "message", alice.id)
    with pytest.raises(NotFound):
        await notification_aggregator.mark_read(db, own.id, "message", carol.id)
    with pytest.raises(Forbidden):
        await notification_aggregator.mark_read(db, request.id, "request", bob.id)
    with pytest.raises(NotFound):
        await notification_aggregator.mark_read(db, 12345604, "request", alice.id)


async def test_mark_all_read_clears_everything(db, transport, pair, make_user, make_idea):
    alice, bob, idea, match = pair
    carol = await make_user("Carol")
    carol_idea = await make_idea(carol, "DogWalkDAO")
    await chat.send_message(db, match.id, bob.id, "one")
    await chat.send_message(db, match.id, bob.id, "two")
    await request_workflow.create_request(db, transport, carol.id, idea.id, "pending")
    sent = await request_workflow.create_request(db, transport, alice.id, carol_idea.id, "please")
    await request_workflow.accept_request(db, transport, sent.id, carol.id)

    assert len(await _types(db, alice.id)) == 3

    counts = await notification_aggregator.mark_all_read(db, alice.id)

    assert counts == {"messages_marked": 2, "requests_marked": 2}
    feed = await notification_aggregator.list_notifications(db, alice.id)
    assert feed.unread_count == 0
    await chat.send_message(db, match.id, bob.id, "three")
    assert await _types(db, alice.id) == ["message"]


async def test_delete_message_catches_up_only_that_match(db, pair, make_idea):
    alice, bob, _, match = pair
    other_idea = await make_idea(bob, "DogWalkDAO")
    other_match, _ = await create_if_absent(db, alice.id, bob.id, other_idea.id)
    await chat.send_message(db, match.id, bob.id, "one")
    latest = await chat.send_message(db, match.id, bob.id, "two")
    await chat.send_message(db, other_match.id, bob.id, "elsewhere")

    await notification_aggregator.delete_notification(db, latest.id, "message", alice.id)

    res = await db.execute(
        select(Message.match_id, Message.read).execution_options(populate_existing=True)
    )
    by_match = {}
    for match_id, read in res.all():
        by_match.setdefault(match_id, set()).add(read)
    assert by_match[match.id] == {True}
    assert by_match[other_match.id] == {False}


async def test_delete_request_rejects_it(db, transport, pair, make_user):
    alice, bob, idea, _ = pair
    carol = await make_user("Carol")
    request = await request_workflow.create_request(db, transport, carol.id, idea.id, "hi")

    with pytest.raises(Forbidden):
        await notification_aggregator.delete_notification(db, request.id, "request", bob.id)

    await notification_aggregator.delete_notification(db, request.id, "request", alice.id)

    stored = await request_workflow.get_request(db, request.id)
    assert stored.status == STATUS_REJECTED
    assert stored.viewed
    assert await _types(db, alice.id) == []


async def test_delete_accepted_notification_keeps_status(db, transport, make_user, make_idea):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    idea = await make_idea(alice, "CryptoChores")
    request = await request_workflow.create_request(db, transport, bob.id, idea.id, "hi")
    await request_workflow.accept_request(db, transport, request.id, alice.id)

    await notification_aggregator.delete_notification(db, request.id, "request_accepted", bob.id)

    stored = await request_workflow.get_request(db, request.id)
    assert stored.status == STATUS_ACCEPTED
    assert stored.viewed
    assert await _types(db, bob.id) == []


async def test_delete_all(db, transport, pair, make_user):
    alice, bob, idea, match = pair
    carol = await make_user("Carol")
    await chat.send_message(db, match.id, bob.id, "one")
    request = await request_workflow.create_request(db, transport, carol.id, idea.id, "hi")

    await notification_aggregator.delete_all(db, alice.id)

    assert await _types(db, alice.id) == []
    stored = await request_workflow.get_request(db, request.id)
    assert stored.status == STATUS_REJECTED


async def test_requester_cannot_clear_owners_pending_notification(db, transport, make_user, make_idea):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    idea = await make_idea(alice, "CryptoChores")
    request = await request_workflow.create_request(db, transport, bob.id, idea.id, "hi")

    with pytest.raises(NotFound):
        await notification_aggregator.mark_read(db, request.id, "request_accepted", bob.id)
    with pytest.raises(NotFound):
        await notification_aggregator.delete_notification(db, request.id, "request_accepted", bob.id)

    assert await _types(db, alice.id) == ["request"]
    stored = await request_workflow.get_request(db, request.id)
    assert not stored.viewed


async def test_owner_cannot_clear_requesters_accepted_notification(db, transport, make_user, make_idea):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    idea = await make_idea(alice, "CryptoChores")
    request = await request_workflow.create_request(db, transport, bob.id, idea.id, "hi")
    await request_workflow.accept_request(db, transport, request.id, alice.id)

    with pytest.raises(NotFound):
        await notification_aggregator.mark_read(db, request.id, "request", alice.id)
    with pytest.raises(NotFound):
        await notification_aggregator.delete_notification(db, request.id, "request", alice.id)

    assert await _types(db, bob.id) == ["request_accepted"]
    stored = await request_workflow.get_request(db, request.id)
    assert stored.status == STATUS_ACCEPTED
    assert not stored.viewed


async def test_rejected_request_has_no_notification(db, transport, make_user, make_idea):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    idea = await make_idea(alice, "CryptoChores")
    request = await request_workflow.create_request(db, transport, bob.id, idea.id, "hi")
    await request_workflow.reject_request(db, request.id, alice.id)

    with pytest.raises(NotFound):
        await notification_aggregator.delete_notification(db, request.id, "request", alice.id)
