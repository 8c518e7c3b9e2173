import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidState, NotFound
from models.idea import Idea
from models.match import Match
from models.swipe import Swipe, SWIPE_LEFT, SWIPE_RIGHT
from services import match_store

logger = logging.getLogger(__name__)


@dataclass
class SwipeOutcome:
    recorded: bool
    match: Optional[Match] = None
    needs_request: bool = False


async def _existing_swipe(db: AsyncSession, user_id: int, idea_id: int) -> Optional[Swipe]:
    res = await db.execute(
        select(Swipe).where(Swipe.user_id == user_id, Swipe.idea_id == idea_id)
    )
    return res.scalar_one_or_none()


async def _earliest_other_right_swipe(db: AsyncSession, user_id: int, idea_id: int) -> Optional[Swipe]:
    res = await db.execute(
        select(Swipe)
        .where(
            Swipe.idea_id == idea_id,
            Swipe.user_id != user_id,
            Swipe.direction == SWIPE_RIGHT,
        )
        .order_by(Swipe.created_at, Swipe.id)
        .limit(1)
    )
    return res.scalar_one_or_none()


async def record_swipe(db: AsyncSession, user_id: int, idea_id: int, direction: str) -> SwipeOutcome:
    """
    Record one like/pass decision and form a match on mutual right swipes.

    A repeated swipe for the same (user, idea) is a no-op. The swipe is
    committed before the partner search so two users swiping at the same
    time always see each other; match uniqueness is left to the match store.
    """
    if direction not in (SWIPE_LEFT, SWIPE_RIGHT):
        raise InvalidState(f"Unknown swipe direction: {direction}")

    idea = await db.get(Idea, idea_id)
    if not idea or not idea.is_active:
        raise NotFound("Idea not found")
    owner_id = idea.owner_id

    if await _existing_swipe(db, user_id, idea_id):
        return SwipeOutcome(recorded=False)

    try:
        async with db.begin_nested():
            db.add(Swipe(user_id=user_id, idea_id=idea_id, direction=direction))
            await db.flush()
    except IntegrityError:
        logger.info("Duplicate swipe by %s on idea %s ignored", user_id, idea_id)
        await db.rollback()
        return SwipeOutcome(recorded=False)

    counter = Idea.swipe_right_count if direction == SWIPE_RIGHT else Idea.swipe_left_count
    await db.execute(
        update(Idea)
        .where(Idea.id == idea_id)
        .values({counter: counter + 1})
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if direction != SWIPE_RIGHT:
        return SwipeOutcome(recorded=True)

    match = None
    partner = await _earliest_other_right_swipe(db, user_id, idea_id)
    if partner:
        match, created = await match_store.create_if_absent(db, user_id, partner.user_id, idea_id)
        if not created:
            match = None

    needs_request = match is None and owner_id is not None and owner_id != user_id
    return SwipeOutcome(recorded=True, match=match, needs_request=needs_request)
