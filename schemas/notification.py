from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel

NotificationType = Literal["request", "request_accepted", "message"]


class Notification(BaseModel):
    type: NotificationType
    id: int
    created_at: datetime
    data: Dict[str, Any]


class NotificationList(BaseModel):
    notifications: List[Notification]
    unread_count: int


class NotificationAction(BaseModel):
    type: NotificationType


class SuccessResponse(BaseModel):
    success: bool = True


class MarkAllReadResponse(SuccessResponse):
    messages_marked: int
    requests_marked: int
