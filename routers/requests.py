from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.request import AcceptResponse, RequestCreate, RequestRead
from services import request_workflow
from services.realtime import RealtimeTransport, get_transport
from utils.payloads import to_match_read, to_request_read

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.post(
    "",
    response_model=RequestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Ask the owner to collaborate on an idea",
)
async def create_request(
    payload: RequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    transport: RealtimeTransport = Depends(get_transport),
) -> RequestRead:
    request = await request_workflow.create_request(
        db, transport, current_user.id, payload.idea_id, payload.message
    )
    return to_request_read(request)


@router.get(
    "",
    response_model=List[RequestRead],
    summary="Requests received on your ideas",
)
async def received_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[RequestRead]:
    requests = await request_workflow.list_received(db, current_user.id)
    return [to_request_read(r) for r in requests]


@router.get(
    "/sent",
    response_model=List[RequestRead],
    summary="Requests you sent",
)
async def sent_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[RequestRead]:
    requests = await request_workflow.list_sent(db, current_user.id)
    return [to_request_read(r) for r in requests]


@router.post(
    "/{request_id}/accept",
    response_model=AcceptResponse,
    summary="Accept a request and create the match",
)
async def accept_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    transport: RealtimeTransport = Depends(get_transport),
) -> AcceptResponse:
    match, request = await request_workflow.accept_request(db, transport, request_id, current_user.id)
    return AcceptResponse(match=to_match_read(match), request=to_request_read(request))


@router.post(
    "/{request_id}/reject",
    response_model=RequestRead,
    summary="Decline a request (the requester is not told)",
)
async def reject_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RequestRead:
    request = await request_workflow.reject_request(db, request_id, current_user.id)
    return to_request_read(request)
