# najm/ticket/services.py
import random
import time

from fastapi import Depends
from sqlalchemy.orm import Session

from najm.chat.state import extract_message_text
from najm.core.config import Settings, get_settings
from najm.core.database import get_db
from najm.ticket.schemas import TranscriptMessage
from najm.ticket.stores import JsonTicketStore, SqlTicketStore, TicketStore


def get_ticket_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TicketStore:
    if settings.TICKET_STORE == "json":
        return JsonTicketStore(settings.DATA_FILE)
    return SqlTicketStore(db)


def generate_ticket_id() -> str:
    return f"T-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def clean_transcript(transcript: list[dict]) -> list[TranscriptMessage]:
    """Transcript as shown to reviewers: no system prompt, no JSON state blocks."""
    cleaned = []
    for message in transcript:
        role = message.get("role")
        content = message.get("content")
        if role == "system" or not isinstance(content, str):
            continue
        text = extract_message_text(content) if role == "assistant" else content.strip()
        if text:
            cleaned.append(TranscriptMessage(role=role, content=text))
    return cleaned
