from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.notification import (
    MarkAllReadResponse,
    NotificationAction,
    NotificationList,
    NotificationType,
    SuccessResponse,
)
from services import notification_aggregator

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationList,
    summary="Pending requests, accepted requests and unread messages",
)
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationList:
    return await notification_aggregator.list_notifications(db, current_user.id)


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark every notification as read",
)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkAllReadResponse:
    counts = await notification_aggregator.mark_all_read(db, current_user.id)
    return MarkAllReadResponse(**counts)


@router.post(
    "/{notification_id}/read",
    response_model=SuccessResponse,
    summary="Mark one notification as read",
)
async def mark_read(
    notification_id: int,
    payload: NotificationAction,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await notification_aggregator.mark_read(db, notification_id, payload.type, current_user.id)
    return SuccessResponse()


@router.delete(
    "/all",
    response_model=SuccessResponse,
    summary="Catch up every conversation and decline every pending request",
)
async def delete_all(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await notification_aggregator.delete_all(db, current_user.id)
    return SuccessResponse()


@router.delete(
    "/{notification_id}",
    response_model=SuccessResponse,
    summary="Dismiss a notification (message: read the conversation, request: decline)",
)
async def delete_notification(
    notification_id: int,
    type: NotificationType = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await notification_aggregator.delete_notification(db, notification_id, type, current_user.id)
    return SuccessResponse()
