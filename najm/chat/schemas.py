# najm/chat/schemas.py
from typing import Any, Literal

from pydantic import BaseModel, Field


class SessionStart(BaseModel):
    language: Literal["ar", "en"] = "ar"


class UserMessage(BaseModel):
    content: str = Field(..., min_length=1)


class TurnOut(BaseModel):
    session_id: str
    language: str
    phase: str
    message: str
    ticket_data: dict[str, Any] = Field(default_factory=dict)
    upload_allowed: bool = False
    ticket_id: str | None = None
