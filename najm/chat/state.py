# najm/chat/state.py
"""
Conversation phase tracking.

The assistant ends each reply with a JSON block such as::

    {"phase": "accident_photos", "ticket": {"description": "...", ...}}

``ChatSession`` keeps the message history, reads that block from every
reply, and exposes what the rest of the app needs from it: whether an image
upload is allowed right now, where it goes, and when the report is finished
and a ticket must be created (once).
"""

import json
import logging
import re
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from najm.ticket.schemas import TicketCreate

logger = logging.getLogger(__name__)

GREETING = "greeting"
DONE = "done"
COMPLETED = "completed"

# Phase -> upload folder
UPLOAD_PHASES = {
    "accident_photos": "accident_photos",
    "id_card": "id_cards",
    "driving_license": "driving_licenses",
    "vehicle_registration": "vehicle_registrations",
}

UPLOAD_NOTICE = {
    "ar": "تم رفع الصورة بنجاح",
    "en": "Image uploaded successfully",
}

_STATE_BLOCK = re.compile(r'\{[\s\S]*"phase"[\s\S]*\}')
_JSON_FENCE = re.compile(r"```json[\s\S]*?```")
_ANY_FENCE = re.compile(r"```[\s\S]*?```")


def parse_llm_state(message: str) -> Optional[dict]:
    """Return the JSON state block of an assistant reply, or None."""
    match = _STATE_BLOCK.search(message or "")
    if not match:
        logger.warning("No JSON state found in LLM response")
        return None
    try:
        state = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.error("Error parsing LLM state: %s", exc)
        return None
    if not isinstance(state, dict):
        return None
    return state


def extract_message_text(message: str) -> str:
    """Reply text as the user should see it, without code fences or state JSON."""
    text = _JSON_FENCE.sub("", message or "").strip()
    text = _ANY_FENCE.sub("", text).strip()
    text = _STATE_BLOCK.sub("", text).strip()
    return text


def _empty_uploads() -> dict:
    return {
        "accident_photos": [],
        "id_card": None,
        "driving_license": None,
        "vehicle_registration": None,
    }


@dataclass
class AssistantTurn:
    text: str
    state: Optional[dict]


@dataclass
class ChatSession:
    system_prompt: str
    language: str = "ar"
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    messages: list = field(default_factory=list)
    phase: str = GREETING
    ticket_data: dict = field(default_factory=dict)
    uploaded_files: dict = field(default_factory=_empty_uploads)
    ticket_id: Optional[str] = None
    last_message: str = ""
    # Held for a whole turn; reentrant so run_turn can take it again inside a route
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def __post_init__(self):
        if not self.messages:
            self.messages.append({"role": "system", "content": self.system_prompt})

    @property
    def ticket_created(self) -> bool:
        return self.ticket_id is not None

    @property
    def upload_allowed(self) -> bool:
        return self.phase in UPLOAD_PHASES

    @property
    def upload_folder(self) -> Optional[str]:
        return UPLOAD_PHASES.get(self.phase)

    @property
    def needs_ticket(self) -> bool:
        return self.phase == DONE and not self.ticket_created

    def add_user_message(self, content: str) -> None:
        self.messages.append({"role": "user", "content": content})

    def apply_assistant_message(self, full_message: str) -> AssistantTurn:
        """
        Record an assistant reply and move the phase along.

        The full reply, JSON included, stays in the history so the model
        keeps seeing its own state. A reply without a readable state block
        leaves the phase and ticket data untouched.
        """
        self.messages.append({"role": "assistant", "content": full_message})
        state = parse_llm_state(full_message)
        text = extract_message_text(full_message)
        self.last_message = text

        if state and state.get("phase"):
            self.phase = str(state["phase"])
            ticket = state.get("ticket")
            if isinstance(ticket, dict):
                self.ticket_data = ticket
            logger.info("Session %s phase: %s", self.session_id, self.phase)
        return AssistantTurn(text=text, state=state)

    def record_upload(self, filename: str, url: str) -> None:
        """Remember an image uploaded during the current upload phase."""
        if not self.upload_allowed:
            raise ValueError(f"uploads are not accepted in phase {self.phase!r}")
        entry = {"filename": filename, "url": url, "type": self.upload_folder}
        if self.phase == "accident_photos":
            self.uploaded_files["accident_photos"].append(entry)
        else:
            self.uploaded_files[self.phase] = entry
        self.add_user_message(UPLOAD_NOTICE.get(self.language, UPLOAD_NOTICE["en"]))

    def build_ticket(self, ticket_id: str) -> TicketCreate:
        data = self.ticket_data
        extracted_data: dict[str, Any] = {
            "description": data.get("description") or "",
            "location": data.get("location") or "",
            "number_of_vehicles": data.get("number_of_vehicles") or 0,
            "injuries": data.get("injuries") or False,
            "accident_photos_count": data.get("accident_photos_count") or 0,
            "id_card_received": data.get("id_card_received") or False,
            "driving_license_received": data.get("driving_license_received") or False,
            "vehicle_registration_received": data.get("vehicle_registration_received") or False,
            "uploads": {
                "accident_photos": list(self.uploaded_files["accident_photos"]),
                "id_card": self.uploaded_files["id_card"],
                "driving_license": self.uploaded_files["driving_license"],
                "vehicle_registration": self.uploaded_files["vehicle_registration"],
            },
        }
        vehicles = data.get("number_of_vehicles")
        return TicketCreate(
            ticket_id=ticket_id,
            transcript=list(self.messages),
            extracted_data=extracted_data,
            description=data.get("description") or "Accident report",
            vehicles=vehicles if isinstance(vehicles, int) and vehicles >= 0 else 1,
        )

    def mark_ticket_created(self, ticket_id: str) -> None:
        self.ticket_id = ticket_id
        self.phase = COMPLETED
