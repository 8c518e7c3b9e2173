from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.swipe import SwipeCreate, SwipeResponse
from services import match_store
from services.realtime import RealtimeTransport, get_transport
from services.swipe_ledger import record_swipe
from utils.payloads import to_match_read

router = APIRouter(prefix="/swipes", tags=["Swipes"])


@router.post(
    "",
    response_model=SwipeResponse,
    status_code=status.HTTP_200_OK,
    summary="Swipe an idea and find out whether a match formed",
)
async def swipe_idea(
    payload: SwipeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    transport: RealtimeTransport = Depends(get_transport),
) -> SwipeResponse:
    outcome = await record_swipe(db, current_user.id, payload.idea_id, payload.direction)

    if outcome.match is None:
        return SwipeResponse(
            idea_id=payload.idea_id,
            recorded=outcome.recorded,
            needs_request=outcome.needs_request,
        )

    await match_store.notify_match(transport, outcome.match)
    return SwipeResponse(
        idea_id=payload.idea_id,
        recorded=outcome.recorded,
        match=to_match_read(outcome.match),
    )
