"""Request bodies for the polling endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class JoinRequest(BaseModel):
    id: str = Field(min_length=1)
    nickname: Optional[str] = None


class SendRequest(BaseModel):
    id: str = Field(min_length=1)
    nickname: Optional[str] = None
    text: str
