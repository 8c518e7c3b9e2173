import logging
from typing import List, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import AlreadyProcessed, Conflict, Forbidden, InvalidRequest, NotFound
from models.base import utcnow
from models.idea import Idea
from models.match import Match
from models.request import IdeaRequest, STATUS_ACCEPTED, STATUS_PENDING, STATUS_REJECTED
from services import match_store
from services.realtime import EVENT_NEW_REQUEST, EVENT_REQUEST_ACCEPTED, RealtimeTransport
from utils.payloads import dump, to_match_read, to_request_read

logger = logging.getLogger(__name__)


async def get_request(db: AsyncSession, request_id: int) -> IdeaRequest:
    res = await db.execute(
        select(IdeaRequest)
        .where(IdeaRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = res.scalar_one_or_none()
    if not request:
        raise NotFound("Request not found")
    return request


def _ensure_owner(request: IdeaRequest, acting_user_id: int) -> None:
    if request.idea_owner_id != acting_user_id:
        raise Forbidden()


async def _transition(
    db: AsyncSession, request: IdeaRequest, acting_user_id: int, status: str, commit: bool = True, **values
) -> None:
    """
    Move a pending request to a terminal status; only one concurrent caller wins.
    With commit=False the caller owns the open transaction.
    """
    _ensure_owner(request, acting_user_id)
    if request.status != STATUS_PENDING:
        raise AlreadyProcessed()

    res = await db.execute(
        update(IdeaRequest)
        .where(IdeaRequest.id == request.id, IdeaRequest.status == STATUS_PENDING)
        .values(status=status, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        await db.rollback()
        raise AlreadyProcessed()
    if commit:
        await db.commit()
    logger.info("Request %s %s by %s", request.id, status, acting_user_id)


async def create_request(
    db: AsyncSession,
    transport: RealtimeTransport,
    requester_id: int,
    idea_id: int,
    message: str,
) -> IdeaRequest:
    idea = await db.get(Idea, idea_id)
    if not idea:
        raise NotFound("Idea not found")
    if idea.owner_id is None:
        raise InvalidRequest("Idea has no owner")
    if idea.owner_id == requester_id:
        raise InvalidRequest("Cannot request your own idea")

    exists = await db.execute(
        select(IdeaRequest.id).where(
            IdeaRequest.requester_id == requester_id,
            IdeaRequest.idea_id == idea_id,
        )
    )
    if exists.first():
        raise Conflict("Request already exists")

    request = IdeaRequest(
        requester_id=requester_id,
        idea_owner_id=idea.owner_id,
        idea_id=idea_id,
        message=message,
    )
    try:
        async with db.begin_nested():
            db.add(request)
            await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Request already exists")
    await db.commit()
    logger.info("Request %s created by %s for idea %s", request.id, requester_id, idea_id)

    request = await get_request(db, request.id)
    await transport.send_to_user(
        request.idea_owner_id, EVENT_NEW_REQUEST, dump(to_request_read(request))
    )
    return request


async def accept_request(
    db: AsyncSession,
    transport: RealtimeTransport,
    request_id: int,
    acting_user_id: int,
) -> Tuple[Match, IdeaRequest]:
    """
    Accept a pending request and form the match for requester and owner.

    If the pair already matched on this idea through swiping, that match is
    returned instead of a new one.
    """
    request = await get_request(db, request_id)
    requester_id, owner_id, idea_id = request.requester_id, request.idea_owner_id, request.idea_id

    # viewed is reset so the requester's request_accepted notification surfaces
    await _transition(db, request, acting_user_id, STATUS_ACCEPTED, commit=False, viewed=False)
    try:
        # the status change and the match commit together
        match, _ = await match_store.create_if_absent(db, requester_id, owner_id, idea_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    request = await get_request(db, request_id)

    await transport.send_to_user(
        requester_id,
        EVENT_REQUEST_ACCEPTED,
        {"request": dump(to_request_read(request)), "match": dump(to_match_read(match))},
    )
    await match_store.notify_match(transport, match)
    return match, request


async def reject_request(db: AsyncSession, request_id: int, acting_user_id: int) -> IdeaRequest:
    """Silent decline: the requester is not notified."""
    request = await get_request(db, request_id)
    await _transition(db, request, acting_user_id, STATUS_REJECTED)
    return await get_request(db, request_id)


async def list_received(db: AsyncSession, user_id: int) -> List[IdeaRequest]:
    res = await db.execute(
        select(IdeaRequest)
        .where(IdeaRequest.idea_owner_id == user_id)
        .order_by(IdeaRequest.created_at.desc(), IdeaRequest.id)
    )
    return list(res.scalars().all())


async def list_sent(db: AsyncSession, user_id: int) -> List[IdeaRequest]:
    res = await db.execute(
        select(IdeaRequest)
        .where(IdeaRequest.requester_id == user_id)
        .order_by(IdeaRequest.created_at.desc(), IdeaRequest.id)
    )
    return list(res.scalars().all())
