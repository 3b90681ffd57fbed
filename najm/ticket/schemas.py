# najm/ticket/schemas.py
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class AttachmentIn(BaseModel):
    filename: str = Field(..., min_length=1)
    original_name: str | None = None
    url: str | None = None
    type: str = "unknown"
    mimetype: str = "image/jpeg"
    size: int = 0


class AttachmentOut(AttachmentIn):
    created_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}


class ConversationIn(BaseModel):
    role: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    audio_path: str | None = None
    transcription: str | None = None


class ConversationOut(ConversationIn):
    id: int
    ticket_id: str
    created_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}


class FindingIn(BaseModel):
    field_name: str = Field(..., min_length=1)
    field_value: str | None = None
    confidence: float | None = None
    source: str = "manual"


class FindingOut(FindingIn):
    id: int
    ticket_id: str
    created_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}


class AudioFileIn(BaseModel):
    file_path: str
    file_type: str | None = None
    duration: float | None = None


class AudioFileOut(AudioFileIn):
    id: int
    ticket_id: str
    created_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}


class TicketBase(BaseModel):
    transcript: list[dict[str, Any]] = Field(default_factory=list)
    extracted_data: dict[str, Any] = Field(default_factory=dict)
    description: str | None = None
    plate: str | None = None
    vehicles: int = Field(default=1, ge=0)
    damage: str | None = None
    status: str = "open"


class TicketCreate(TicketBase):
    ticket_id: str = Field(..., min_length=1)
    attachments: list[AttachmentIn] = Field(default_factory=list)


class TicketUpdate(BaseModel):
    transcript: list[dict[str, Any]] | None = None
    extracted_data: dict[str, Any] | None = None
    description: str | None = None
    plate: str | None = None
    vehicles: int | None = Field(default=None, ge=0)
    damage: str | None = None
    status: str | None = None


class TicketOut(TicketBase):
    ticket_id: str
    user_id: int | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None
    attachments: list[AttachmentOut] = Field(default_factory=list)
    conversations: list[ConversationOut] = Field(default_factory=list)
    findings: list[FindingOut] = Field(default_factory=list)
    audio_files: list[AudioFileOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class TicketSummary(TicketOut):
    attachments_count: int = 0


class TicketList(BaseModel):
    count: int
    tickets: list[TicketSummary]


class TranscriptMessage(BaseModel):
    role: str
    content: str
