"""Conversion of ORM rows into response schemas and push payloads."""
from typing import Any, Dict, Optional

from pydantic import BaseModel

from models.match import Match
from models.message import Message
from models.request import IdeaRequest
from schemas.match import MatchListItem, MatchRead
from schemas.message import MessageRead
from schemas.request import RequestRead


def to_match_read(match: Match) -> MatchRead:
    return MatchRead.model_validate(match)


def to_match_list_item(match: Match, last_message: Optional[Message]) -> MatchListItem:
    base = to_match_read(match)
    return MatchListItem(
        **base.model_dump(),
        last_message=to_message_read(last_message) if last_message else None,
        sort_timestamp=last_message.created_at if last_message else match.created_at,
    )


def to_request_read(request: IdeaRequest) -> RequestRead:
    return RequestRead.model_validate(request)


def to_message_read(message: Message) -> MessageRead:
    return MessageRead.model_validate(message)


def dump(model: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict for websocket frames."""
    return model.model_dump(mode="json")
