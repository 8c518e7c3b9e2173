import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Forbidden, InvalidState, NotFound
from models.match import Match
from models.message import Message
from services.realtime import EVENT_MATCH, RealtimeTransport
from utils.payloads import dump, to_match_read

logger = logging.getLogger(__name__)


def canonical_pair(user_a: int, user_b: int) -> Tuple[int, int]:
    if user_a == user_b:
        raise InvalidState("A match needs two different users")
    low, high = sorted((user_a, user_b))
    return low, high


async def find_match(db: AsyncSession, user_a: int, user_b: int, idea_id: int) -> Optional[Match]:
    low, high = canonical_pair(user_a, user_b)
    res = await db.execute(
        select(Match)
        .where(
            Match.user_a_id == low,
            Match.user_b_id == high,
            Match.idea_id == idea_id,
        )
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def create_if_absent(
    db: AsyncSession, user_a: int, user_b: int, idea_id: int
) -> Tuple[Match, bool]:
    """
    Return the match for the unordered pair on this idea, creating it if needed.

    The unique index on (user_a_id, user_b_id, idea_id) decides races: the
    insert runs in a SAVEPOINT and a caller that loses reads back the row
    the winner committed. The second element is True only for the caller
    that actually inserted.
    """
    low, high = canonical_pair(user_a, user_b)

    existing = await find_match(db, low, high, idea_id)
    if existing:
        return existing, False

    match = Match(user_a_id=low, user_b_id=high, idea_id=idea_id)
    try:
        async with db.begin_nested():
            db.add(match)
            await db.flush()
    except IntegrityError:
        logger.info("Match %s↔%s on idea %s already created concurrently", low, high, idea_id)
        existing = await find_match(db, low, high, idea_id)
        if existing is None:
            # The conflict came from something other than the pair key.
            raise
        await db.commit()
        return existing, False

    await db.commit()
    logger.info("Match created %s↔%s on idea %s", low, high, idea_id)
    created = await find_match(db, low, high, idea_id)
    return created, True


async def get_match(db: AsyncSession, match_id: int) -> Match:
    res = await db.execute(
        select(Match)
        .where(Match.id == match_id)
        .execution_options(populate_existing=True)
    )
    match = res.scalar_one_or_none()
    if not match:
        raise NotFound("Match not found")
    return match


async def get_for_participant(db: AsyncSession, match_id: int, user_id: int) -> Match:
    match = await get_match(db, match_id)
    if not match.has_participant(user_id):
        raise Forbidden()
    return match


async def match_ids_for_user(db: AsyncSession, user_id: int) -> List[int]:
    res = await db.execute(
        select(Match.id).where(or_(Match.user_a_id == user_id, Match.user_b_id == user_id))
    )
    return [row[0] for row in res.all()]


async def list_for_user(db: AsyncSession, user_id: int) -> List[Tuple[Match, Optional[Message]]]:
    """Matches of the user with their last message, most recent activity first."""
    res = await db.execute(
        select(Match)
        .where(or_(Match.user_a_id == user_id, Match.user_b_id == user_id))
        .order_by(Match.created_at.desc())
    )
    matches = res.scalars().all()
    if not matches:
        return []

    latest = (
        select(Message.match_id, func.max(Message.created_at).label("last_at"))
        .where(Message.match_id.in_([m.id for m in matches]))
        .group_by(Message.match_id)
        .subquery()
    )
    res = await db.execute(
        select(Message)
        .join(
            latest,
            (Message.match_id == latest.c.match_id) & (Message.created_at == latest.c.last_at),
        )
        .order_by(Message.id)
    )
    last_by_match = {}
    for message in res.scalars().all():
        last_by_match.setdefault(message.match_id, message)

    rows = [(match, last_by_match.get(match.id)) for match in matches]
    rows.sort(
        key=lambda row: row[1].created_at if row[1] else row[0].created_at,
        reverse=True,
    )
    return rows


def _read_flag(match: Match, user_id: int) -> str:
    if match.user_a_id == user_id:
        return "read_by_a"
    if match.user_b_id == user_id:
        return "read_by_b"
    raise Forbidden()


async def _set_read_flag(db: AsyncSession, match: Match, user_id: int, value: bool) -> None:
    # set-based so the write happens even when this session holds a stale flag
    await db.execute(
        update(Match)
        .where(Match.id == match.id)
        .values({_read_flag(match, user_id): value})
        .execution_options(synchronize_session=False)
    )


async def mark_viewed(db: AsyncSession, match: Match, user_id: int) -> None:
    await _set_read_flag(db, match, user_id, True)
    await db.commit()


async def mark_unread_for(db: AsyncSession, match: Match, user_id: int) -> None:
    """Flag the conversation unread for the given participant; caller commits."""
    await _set_read_flag(db, match, user_id, False)


async def notify_match(transport: RealtimeTransport, match: Match) -> None:
    """Push match_notification to both participants' personal channels."""
    payload = dump(to_match_read(match))
    for user_id in (match.user_a_id, match.user_b_id):
        await transport.send_to_user(user_id, EVENT_MATCH, payload)
