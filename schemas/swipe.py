from typing import Literal, Optional

from pydantic import BaseModel, Field

from .match import MatchRead


class SwipeCreate(BaseModel):
    idea_id: int
    direction: Literal["left", "right"]


class SwipeResponse(BaseModel):
    idea_id: int
    recorded: bool = Field(..., description="False when the swipe was already on file")
    match: Optional[MatchRead] = None
    needs_request: bool = Field(False, description="Idea has another owner; an explicit request can be sent")
