from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .idea import IdeaBrief
from .message import MessageRead
from .user import UserBrief


class MatchRead(BaseModel):
    id: int
    user_a: UserBrief
    user_b: UserBrief
    idea: IdeaBrief
    read_by_a: bool
    read_by_b: bool
    created_at: datetime

    class Config:
        from_attributes = True
        validate_by_name = True


class MatchListItem(MatchRead):
    last_message: Optional[MessageRead] = None
    sort_timestamp: datetime
