from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.message import MessageCreate, MessageRead
from schemas.notification import SuccessResponse
from services import chat, match_store
from services.realtime import RealtimeTransport, get_transport
from utils.payloads import to_message_read

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.get(
    "/{match_id}/messages",
    response_model=List[MessageRead],
    summary="Conversation history, oldest first",
)
async def list_messages(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[MessageRead]:
    messages = await chat.list_messages(db, match_id, current_user.id)
    return [to_message_read(m) for m in messages]


@router.post(
    "/{match_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to the match",
)
async def send_message(
    match_id: int,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    transport: RealtimeTransport = Depends(get_transport),
) -> MessageRead:
    message = await chat.send_message(db, match_id, current_user.id, payload.content)
    match = await match_store.get_match(db, match_id)
    await chat.publish_message(transport, match, message)
    return to_message_read(message)


@router.post(
    "/{match_id}/messages/read",
    response_model=SuccessResponse,
    summary="Mark the conversation as read",
)
async def mark_messages_read(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await chat.mark_conversation_read(db, match_id, current_user.id)
    return SuccessResponse()
