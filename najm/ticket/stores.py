# najm/ticket/stores.py
"""
Ticket persistence.

Two interchangeable backends sit behind ``TicketStore``: ``SqlTicketStore``
keeps tickets and their child records in the SQLAlchemy database, and
``JsonTicketStore`` keeps everything in a single ``{"tickets": [...]}``
document on disk. Both return ``TicketOut`` models so routes never see
which one is in use.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from najm.core.errors import DuplicateTicketError, StorageError
from najm.ticket.models import Attachment, AudioFile, Conversation, Finding, Ticket
from najm.ticket.schemas import (
    AttachmentIn,
    AudioFileIn,
    AudioFileOut,
    ConversationIn,
    ConversationOut,
    FindingIn,
    FindingOut,
    TicketCreate,
    TicketOut,
    TicketUpdate,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TicketStore(ABC):
    """Storage interface shared by the SQLite and JSON backends."""

    @abstractmethod
    def list_tickets(self, status: str | None = None) -> list[TicketOut]:
        """All tickets, newest first, optionally filtered by status."""

    @abstractmethod
    def get_ticket(self, ticket_id: str) -> TicketOut | None:
        pass

    @abstractmethod
    def create_ticket(self, payload: TicketCreate) -> TicketOut:
        """Insert a ticket; raises DuplicateTicketError if the id is taken."""

    @abstractmethod
    def update_ticket(self, ticket_id: str, payload: TicketUpdate) -> TicketOut | None:
        """Apply the fields that were set and are not null."""

    @abstractmethod
    def delete_ticket(self, ticket_id: str) -> bool:
        pass

    @abstractmethod
    def add_attachments(
        self, ticket_id: str, attachments: list[AttachmentIn], create_missing: bool = False
    ) -> TicketOut | None:
        """
        Attach files to a ticket.

        With ``create_missing`` an empty ticket is created first when the id
        is unknown, so uploads made before the report is finished are kept.
        """

    @abstractmethod
    def add_conversation(self, ticket_id: str, payload: ConversationIn) -> ConversationOut | None:
        pass

    @abstractmethod
    def add_finding(self, ticket_id: str, payload: FindingIn) -> FindingOut | None:
        pass

    @abstractmethod
    def add_audio_file(self, ticket_id: str, payload: AudioFileIn) -> AudioFileOut | None:
        pass

    @abstractmethod
    def remove_audio_files(self, file_path: str) -> int:
        """Drop audio records pointing at ``file_path``; returns how many."""


class SqlTicketStore(TicketStore):
    def __init__(self, db: Session):
        self.db = db

    def _get(self, ticket_id: str) -> Ticket | None:
        return self.db.query(Ticket).filter(Ticket.ticket_id == ticket_id).first()

    def list_tickets(self, status: str | None = None) -> list[TicketOut]:
        query = self.db.query(Ticket)
        if status:
            query = query.filter(Ticket.status == status)
        items = query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()
        return [TicketOut.model_validate(t) for t in items]

    def get_ticket(self, ticket_id: str) -> TicketOut | None:
        db_ticket = self._get(ticket_id)
        return TicketOut.model_validate(db_ticket) if db_ticket else None

    def create_ticket(self, payload: TicketCreate) -> TicketOut:
        if self._get(payload.ticket_id):
            raise DuplicateTicketError(payload.ticket_id)

        db_ticket = Ticket(**payload.model_dump(exclude={"attachments"}))
        for attachment in payload.attachments:
            db_ticket.attachments.append(Attachment(**attachment.model_dump()))
        self.db.add(db_ticket)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self._get(payload.ticket_id):
                raise DuplicateTicketError(payload.ticket_id)
            raise
        self.db.refresh(db_ticket)
        return TicketOut.model_validate(db_ticket)

    def update_ticket(self, ticket_id: str, payload: TicketUpdate) -> TicketOut | None:
        db_ticket = self._get(ticket_id)
        if not db_ticket:
            return None
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(db_ticket, field, value)
        db_ticket.updated_at = _now()
        self.db.commit()
        self.db.refresh(db_ticket)
        return TicketOut.model_validate(db_ticket)

    def delete_ticket(self, ticket_id: str) -> bool:
        db_ticket = self._get(ticket_id)
        if not db_ticket:
            return False
        self.db.delete(db_ticket)
        self.db.commit()
        return True

    def add_attachments(
        self, ticket_id: str, attachments: list[AttachmentIn], create_missing: bool = False
    ) -> TicketOut | None:
        db_ticket = self._get(ticket_id)
        if not db_ticket:
            if not create_missing:
                return None
            db_ticket = Ticket(ticket_id=ticket_id)
            self.db.add(db_ticket)
        for attachment in attachments:
            db_ticket.attachments.append(Attachment(**attachment.model_dump()))
        db_ticket.updated_at = _now()
        self.db.commit()
        self.db.refresh(db_ticket)
        return TicketOut.model_validate(db_ticket)

    def _add_child(self, ticket_id: str, record):
        if not self._get(ticket_id):
            return None
        record.ticket_id = ticket_id
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def add_conversation(self, ticket_id: str, payload: ConversationIn) -> ConversationOut | None:
        record = self._add_child(ticket_id, Conversation(**payload.model_dump()))
        return ConversationOut.model_validate(record) if record else None

    def add_finding(self, ticket_id: str, payload: FindingIn) -> FindingOut | None:
        record = self._add_child(ticket_id, Finding(**payload.model_dump()))
        return FindingOut.model_validate(record) if record else None

    def add_audio_file(self, ticket_id: str, payload: AudioFileIn) -> AudioFileOut | None:
        record = self._add_child(ticket_id, AudioFile(**payload.model_dump()))
        return AudioFileOut.model_validate(record) if record else None

    def remove_audio_files(self, file_path: str) -> int:
        removed = self.db.query(AudioFile).filter(AudioFile.file_path == file_path).delete()
        self.db.commit()
        return removed


class JsonTicketStore(TicketStore):
    # One lock for every JSON store in the process; requests run in a threadpool
    _lock = threading.RLock()

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {"tickets": []}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {"tickets": []}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Error reading tickets data from %s: %s", self.path, exc)
            raise StorageError("Ticket data file is unreadable")
        if not isinstance(data, dict) or not isinstance(data.setdefault("tickets", []), list):
            logger.error("Unexpected tickets data layout in %s", self.path)
            raise StorageError("Ticket data file is unreadable")
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError:
            logger.error("Error writing tickets data to %s", self.path, exc_info=True)
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    @staticmethod
    def _find(data: dict, ticket_id: str) -> dict | None:
        return next((t for t in data["tickets"] if t.get("ticket_id") == ticket_id), None)

    @staticmethod
    def _new_ticket(ticket_id: str, **fields) -> dict:
        now = _now()
        ticket = TicketOut(ticket_id=ticket_id, created_at=now, updated_at=now, **fields)
        return ticket.model_dump(mode="json")

    @staticmethod
    def _next_id(records: list[dict]) -> int:
        return max((r.get("id", 0) for r in records), default=0) + 1

    def list_tickets(self, status: str | None = None) -> list[TicketOut]:
        with self._lock:
            tickets = [TicketOut.model_validate(t) for t in self._read()["tickets"]]
        if status:
            tickets = [t for t in tickets if t.status == status]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        # Reversed first so equal timestamps still list the later insert first
        return sorted(reversed(tickets), key=lambda t: t.created_at or epoch, reverse=True)

    def get_ticket(self, ticket_id: str) -> TicketOut | None:
        with self._lock:
            ticket = self._find(self._read(), ticket_id)
        return TicketOut.model_validate(ticket) if ticket else None

    def create_ticket(self, payload: TicketCreate) -> TicketOut:
        with self._lock:
            data = self._read()
            if self._find(data, payload.ticket_id):
                raise DuplicateTicketError(payload.ticket_id)
            fields = payload.model_dump(exclude={"ticket_id", "attachments"})
            ticket = self._new_ticket(payload.ticket_id, **fields)
            created = _now().isoformat()
            ticket["attachments"] = [
                {**a.model_dump(), "created_at": created} for a in payload.attachments
            ]
            data["tickets"].append(ticket)
            self._write(data)
        return TicketOut.model_validate(ticket)

    def update_ticket(self, ticket_id: str, payload: TicketUpdate) -> TicketOut | None:
        with self._lock:
            data = self._read()
            ticket = self._find(data, ticket_id)
            if not ticket:
                return None
            ticket.update(payload.model_dump(mode="json", exclude_unset=True, exclude_none=True))
            ticket["updated_at"] = _now().isoformat()
            self._write(data)
        return TicketOut.model_validate(ticket)

    def delete_ticket(self, ticket_id: str) -> bool:
        with self._lock:
            data = self._read()
            ticket = self._find(data, ticket_id)
            if not ticket:
                return False
            data["tickets"].remove(ticket)
            self._write(data)
        return True

    def add_attachments(
        self, ticket_id: str, attachments: list[AttachmentIn], create_missing: bool = False
    ) -> TicketOut | None:
        with self._lock:
            data = self._read()
            ticket = self._find(data, ticket_id)
            if not ticket:
                if not create_missing:
                    return None
                ticket = self._new_ticket(ticket_id)
                data["tickets"].append(ticket)
            now = _now().isoformat()
            ticket.setdefault("attachments", []).extend(
                {**a.model_dump(), "created_at": now} for a in attachments
            )
            ticket["updated_at"] = now
            self._write(data)
        return TicketOut.model_validate(ticket)

    def _add_child(self, ticket_id: str, key: str, fields: dict) -> dict | None:
        with self._lock:
            data = self._read()
            ticket = self._find(data, ticket_id)
            if not ticket:
                return None
            records = ticket.setdefault(key, [])
            record = {
                "id": self._next_id(records),
                "ticket_id": ticket_id,
                **fields,
                "created_at": _now().isoformat(),
            }
            records.append(record)
            self._write(data)
        return record

    def add_conversation(self, ticket_id: str, payload: ConversationIn) -> ConversationOut | None:
        record = self._add_child(ticket_id, "conversations", payload.model_dump())
        return ConversationOut.model_validate(record) if record else None

    def add_finding(self, ticket_id: str, payload: FindingIn) -> FindingOut | None:
        record = self._add_child(ticket_id, "findings", payload.model_dump())
        return FindingOut.model_validate(record) if record else None

    def add_audio_file(self, ticket_id: str, payload: AudioFileIn) -> AudioFileOut | None:
        record = self._add_child(ticket_id, "audio_files", payload.model_dump())
        return AudioFileOut.model_validate(record) if record else None

    def remove_audio_files(self, file_path: str) -> int:
        removed = 0
        with self._lock:
            data = self._read()
            for ticket in data["tickets"]:
                kept = [a for a in ticket.get("audio_files", []) if a.get("file_path") != file_path]
                removed += len(ticket.get("audio_files", [])) - len(kept)
                ticket["audio_files"] = kept
            if removed:
                self._write(data)
        return removed
