from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .user import UserBrief


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=5000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message content is required")
        return value


class MessageRead(BaseModel):
    id: int
    match_id: int
    sender: UserBrief
    content: str
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True
        validate_by_name = True
