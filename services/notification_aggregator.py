"""
Per-user notification feed.

Notifications are never stored. Each query projects them from request and
message rows, and every read/delete action is a mutation of those rows:

* ``request``          pending request on one of the user's ideas, not yet viewed
* ``request_accepted`` request the user sent that was accepted, not yet viewed
* ``message``          latest unread counterpart message, one per match
"""
import logging
from typing import Dict, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Forbidden, NotFound
from models.match import Match
from models.message import Message
from models.request import IdeaRequest, STATUS_ACCEPTED, STATUS_PENDING, STATUS_REJECTED
from schemas.idea import IdeaBrief
from schemas.notification import Notification, NotificationList
from schemas.user import UserBrief
from services import match_store

logger = logging.getLogger(__name__)

TYPE_REQUEST = "request"
TYPE_REQUEST_ACCEPTED = "request_accepted"
TYPE_MESSAGE = "message"


def _user(user) -> Dict:
    return UserBrief.model_validate(user).model_dump(mode="json")


def _idea(idea) -> Dict:
    return IdeaBrief.model_validate(idea).model_dump(mode="json")


def request_notification(request: IdeaRequest) -> Notification:
    return Notification(
        type=TYPE_REQUEST,
        id=request.id,
        created_at=request.created_at,
        data={
            "requester": _user(request.requester),
            "idea": _idea(request.idea),
            "message": request.message,
        },
    )


def request_accepted_notification(request: IdeaRequest, match_id=None) -> Notification:
    return Notification(
        type=TYPE_REQUEST_ACCEPTED,
        id=request.id,
        created_at=request.updated_at,
        data={
            "idea_owner": _user(request.idea_owner),
            "idea": _idea(request.idea),
            "message": request.message,
            "match_id": match_id,
        },
    )


def message_notification(message: Message, match: Match, user_id: int) -> Notification:
    return Notification(
        type=TYPE_MESSAGE,
        id=message.id,
        created_at=message.created_at,
        data={
            "sender": _user(message.sender),
            "match": {"id": match.id, "idea": _idea(match.idea)},
            "content": message.content,
            "other_user": _user(match.other_user(user_id)),
        },
    )


async def list_notifications(db: AsyncSession, user_id: int) -> NotificationList:
    notifications: List[Notification] = []

    res = await db.execute(
        select(IdeaRequest)
        .where(
            IdeaRequest.idea_owner_id == user_id,
            IdeaRequest.status == STATUS_PENDING,
            IdeaRequest.viewed.is_(False),
        )
        .order_by(IdeaRequest.created_at.desc(), IdeaRequest.id)
        .execution_options(populate_existing=True)
    )
    notifications.extend(request_notification(r) for r in res.scalars().all())

    res = await db.execute(
        select(IdeaRequest)
        .where(
            IdeaRequest.requester_id == user_id,
            IdeaRequest.status == STATUS_ACCEPTED,
            IdeaRequest.viewed.is_(False),
        )
        .order_by(IdeaRequest.updated_at.desc(), IdeaRequest.id)
        .execution_options(populate_existing=True)
    )
    accepted = res.scalars().all()
    for request in accepted:
        match = await match_store.find_match(db, request.requester_id, request.idea_owner_id, request.idea_id)
        notifications.append(request_accepted_notification(request, match.id if match else None))

    match_ids = await match_store.match_ids_for_user(db, user_id)
    if match_ids:
        res = await db.execute(
            select(Message)
            .where(
                Message.match_id.in_(match_ids),
                Message.sender_id != user_id,
                Message.read.is_(False),
            )
            .order_by(Message.created_at.desc(), Message.id)
            .execution_options(populate_existing=True)
        )
        latest: Dict[int, Message] = {}
        for message in res.scalars().all():
            latest.setdefault(message.match_id, message)

        if latest:
            res = await db.execute(
                select(Match)
                .where(Match.id.in_(list(latest)))
                .execution_options(populate_existing=True)
            )
            matches = {m.id: m for m in res.scalars().all()}
            for match_id, message in latest.items():
                notifications.append(message_notification(message, matches[match_id], user_id))

    # list.sort is stable, so equal timestamps keep source order
    notifications.sort(key=lambda n: n.created_at, reverse=True)
    return NotificationList(notifications=notifications, unread_count=len(notifications))


async def _owned_message(db: AsyncSession, message_id: int, user_id: int) -> Message:
    """A message addressed to the user: in one of their matches, sent by the counterpart."""
    message = await db.get(Message, message_id)
    if not message:
        raise NotFound("Message not found")
    match = await db.get(Match, message.match_id)
    if not match or not match.has_participant(user_id) or message.sender_id == user_id:
        raise NotFound("Message not found")
    return message


# Status a request must be in for each request-backed notification type,
# and the column naming the user that notification is addressed to.
_REQUEST_NOTIFICATIONS = {
    TYPE_REQUEST: (STATUS_PENDING, IdeaRequest.idea_owner_id),
    TYPE_REQUEST_ACCEPTED: (STATUS_ACCEPTED, IdeaRequest.requester_id),
}


async def _request_for(db: AsyncSession, request_id: int) -> IdeaRequest:
    res = await db.execute(
        select(IdeaRequest)
        .where(IdeaRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = res.scalar_one_or_none()
    if not request:
        raise NotFound("Request not found")
    return request


async def _concerned_request(db: AsyncSession, request_id: int, user_id: int, notification_type: str) -> IdeaRequest:
    """
    The request behind a notification of the given type. A request in another
    status has no such notification; the wrong party gets Forbidden.
    """
    request = await _request_for(db, request_id)
    status, addressee = _REQUEST_NOTIFICATIONS[notification_type]
    if request.status != status:
        raise NotFound("Notification not found")
    if getattr(request, addressee.key) != user_id:
        raise Forbidden()
    return request


async def _update_request_notification(
    db: AsyncSession, request_id: int, user_id: int, notification_type: str, **values
) -> None:
    status, addressee = _REQUEST_NOTIFICATIONS[notification_type]
    res = await db.execute(
        update(IdeaRequest)
        .where(
            IdeaRequest.id == request_id,
            IdeaRequest.status == status,
            addressee == user_id,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        # decided or re-decided since it was read
        await db.rollback()
        raise NotFound("Notification not found")


async def mark_read(db: AsyncSession, notification_id: int, notification_type: str, user_id: int) -> None:
    if notification_type == TYPE_MESSAGE:
        await _owned_message(db, notification_id, user_id)
        await db.execute(
            update(Message)
            .where(Message.id == notification_id)
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
    else:
        await _concerned_request(db, notification_id, user_id, notification_type)
        await _update_request_notification(db, notification_id, user_id, notification_type, viewed=True)
    await db.commit()


async def mark_all_read(db: AsyncSession, user_id: int) -> Dict[str, int]:
    """Clear every notification source of the user in one transaction."""
    match_ids = select(Match.id).where((Match.user_a_id == user_id) | (Match.user_b_id == user_id))

    messages = await db.execute(
        update(Message)
        .where(
            Message.match_id.in_(match_ids),
            Message.sender_id != user_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    received = await db.execute(
        update(IdeaRequest)
        .where(
            IdeaRequest.idea_owner_id == user_id,
            IdeaRequest.status == STATUS_PENDING,
            IdeaRequest.viewed.is_(False),
        )
        .values(viewed=True)
        .execution_options(synchronize_session=False)
    )
    sent = await db.execute(
        update(IdeaRequest)
        .where(
            IdeaRequest.requester_id == user_id,
            IdeaRequest.status == STATUS_ACCEPTED,
            IdeaRequest.viewed.is_(False),
        )
        .values(viewed=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    counts = {
        "messages_marked": messages.rowcount,
        "requests_marked": received.rowcount + sent.rowcount,
    }
    logger.info("Marked all notifications read for %s: %s", user_id, counts)
    return counts


async def delete_notification(db: AsyncSession, notification_id: int, notification_type: str, user_id: int) -> None:
    """
    There is nothing to delete: a message notification catches up the whole
    conversation, a request notification rejects the request.
    """
    if notification_type == TYPE_MESSAGE:
        message = await _owned_message(db, notification_id, user_id)
        await db.execute(
            update(Message)
            .where(
                Message.match_id == message.match_id,
                Message.sender_id != user_id,
                Message.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return

    await _concerned_request(db, notification_id, user_id, notification_type)
    values = {"viewed": True}
    if notification_type == TYPE_REQUEST:
        values["status"] = STATUS_REJECTED
    await _update_request_notification(db, notification_id, user_id, notification_type, **values)
    await db.commit()
    if notification_type == TYPE_REQUEST:
        logger.info("Request %s rejected via notification delete by %s", notification_id, user_id)


async def delete_all(db: AsyncSession, user_id: int) -> None:
    match_ids = select(Match.id).where((Match.user_a_id == user_id) | (Match.user_b_id == user_id))
    await db.execute(
        update(Message)
        .where(
            Message.match_id.in_(match_ids),
            Message.sender_id != user_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(IdeaRequest)
        .where(
            IdeaRequest.idea_owner_id == user_id,
            IdeaRequest.status == STATUS_PENDING,
        )
        .values(status=STATUS_REJECTED, viewed=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
