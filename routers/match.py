# routers/match.py

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.match import MatchListItem, MatchRead
from services import match_store
from utils.payloads import to_match_list_item, to_match_read

router = APIRouter(prefix="/matches", tags=["Matches"])


@router.get(
    "",
    response_model=List[MatchListItem],
    summary="Your matches, most recent conversation first",
)
async def get_my_matches(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[MatchListItem]:
    rows = await match_store.list_for_user(db, current_user.id)
    return [to_match_list_item(match, last_message) for match, last_message in rows]


@router.get(
    "/{match_id}",
    response_model=MatchRead,
    summary="One match (participants only)",
)
async def get_match(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MatchRead:
    match = await match_store.get_for_participant(db, match_id, current_user.id)
    return to_match_read(match)
