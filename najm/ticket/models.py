# najm/ticket/models.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from najm.core.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    plate = Column(String, nullable=True)
    vehicles = Column(Integer, default=1)
    damage = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String, default="open", index=True)
    transcript = Column(JSON, default=list)
    extracted_data = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    attachments = relationship(
        "Attachment", cascade="all, delete-orphan", order_by="Attachment.id"
    )
    conversations = relationship(
        "Conversation", cascade="all, delete-orphan", order_by="Conversation.id"
    )
    findings = relationship(
        "Finding", cascade="all, delete-orphan", order_by="Finding.id"
    )
    audio_files = relationship(
        "AudioFile", cascade="all, delete-orphan", order_by="AudioFile.id"
    )


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(
        String, ForeignKey("tickets.ticket_id", ondelete="CASCADE"), index=True, nullable=False
    )
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=True)
    url = Column(String, nullable=True)
    type = Column(String, default="unknown")
    mimetype = Column(String, default="image/jpeg")
    size = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(
        String, ForeignKey("tickets.ticket_id", ondelete="CASCADE"), index=True, nullable=False
    )
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    audio_path = Column(String, nullable=True)
    transcription = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Finding(Base):
    __tablename__ = "findings"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(
        String, ForeignKey("tickets.ticket_id", ondelete="CASCADE"), index=True, nullable=False
    )
    field_name = Column(String, nullable=False)
    field_value = Column(String, nullable=True)
    confidence = Column(Float, nullable=True)
    source = Column(String, default="manual")
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class AudioFile(Base):
    __tablename__ = "audio_files"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(
        String, ForeignKey("tickets.ticket_id", ondelete="CASCADE"), index=True, nullable=False
    )
    file_path = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    duration = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
