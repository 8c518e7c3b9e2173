import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidState
from models.match import Match
from models.message import Message
from services import match_store
from services.notification_aggregator import message_notification
from services.realtime import EVENT_MESSAGE, EVENT_NEW_NOTIFICATION, RealtimeTransport
from utils.payloads import dump, to_message_read

logger = logging.getLogger(__name__)


async def get_message(db: AsyncSession, message_id: int) -> Message:
    res = await db.execute(
        select(Message)
        .where(Message.id == message_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one()


async def send_message(db: AsyncSession, match_id: int, sender_id: int, content: str) -> Message:
    content = (content or "").strip()
    if not content:
        raise InvalidState("Message content is required")

    match = await match_store.get_for_participant(db, match_id, sender_id)
    message = Message(match_id=match.id, sender_id=sender_id, content=content)
    db.add(message)
    await match_store.mark_unread_for(db, match, match.other_user_id(sender_id))
    await db.commit()
    return await get_message(db, message.id)


async def list_messages(db: AsyncSession, match_id: int, user_id: int) -> List[Message]:
    await match_store.get_for_participant(db, match_id, user_id)
    res = await db.execute(
        select(Message)
        .where(Message.match_id == match_id)
        .order_by(Message.created_at, Message.id)
    )
    return list(res.scalars().all())


async def mark_match_messages_read(db: AsyncSession, match_id: int, reader_id: int) -> int:
    """Mark every unread counterpart message in one match read; caller commits."""
    res = await db.execute(
        update(Message)
        .where(
            Message.match_id == match_id,
            Message.sender_id != reader_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount


async def mark_conversation_read(db: AsyncSession, match_id: int, user_id: int) -> int:
    match = await match_store.get_for_participant(db, match_id, user_id)
    marked = await mark_match_messages_read(db, match.id, user_id)
    await match_store.mark_viewed(db, match, user_id)
    return marked


async def publish_message(transport: RealtimeTransport, match: Match, message: Message) -> None:
    """Broadcast to the conversation channel and alert the recipient's personal channel."""
    await transport.send_to_match(match.id, EVENT_MESSAGE, dump(to_message_read(message)))

    recipient_id = match.other_user_id(message.sender_id)
    notification = message_notification(message, match, recipient_id)
    await transport.send_to_user(recipient_id, EVENT_NEW_NOTIFICATION, dump(notification))
