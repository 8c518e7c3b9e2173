from typing import Optional

from pydantic import BaseModel, Field


class UserBrief(BaseModel):
    id: int = Field(..., description="User PK")
    name: Optional[str] = Field(None, description="Display name")
    avatar: Optional[str] = Field(None, description="Avatar URL")
    role: Optional[str] = Field(None, description="Visionary / Code / Marketing / Fundless VC")

    class Config:
        from_attributes = True
        validate_by_name = True
