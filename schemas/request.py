from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .idea import IdeaBrief
from .match import MatchRead
from .user import UserBrief


class RequestCreate(BaseModel):
    idea_id: int
    message: str = Field(..., max_length=2000)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message is required")
        return value


class RequestRead(BaseModel):
    id: int
    requester: UserBrief
    idea_owner: UserBrief
    idea: IdeaBrief
    message: str
    status: Literal["pending", "accepted", "rejected"]
    viewed: bool
    created_at: datetime

    class Config:
        from_attributes = True
        validate_by_name = True


class AcceptResponse(BaseModel):
    match: MatchRead
    request: RequestRead
