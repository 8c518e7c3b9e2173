from typing import Optional

from pydantic import BaseModel, Field


class IdeaBrief(BaseModel):
    id: int
    name: str
    one_liner: Optional[str] = Field(None, description="Short pitch")

    class Config:
        from_attributes = True
        validate_by_name = True
