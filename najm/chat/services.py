# najm/chat/services.py
import logging
import threading

import httpx
import openai
from fastapi import Depends
from openai import OpenAI

from najm.chat.prompts import build_system_prompt
from najm.chat.schemas import TurnOut
from najm.chat.state import ChatSession
from najm.core.config import Settings, get_settings
from najm.core.errors import DuplicateTicketError, ServiceNotConfiguredError, UpstreamServiceError
from najm.ticket.services import generate_ticket_id
from najm.ticket.stores import TicketStore

logger = logging.getLogger(__name__)

TICKET_ID_ATTEMPTS = 3


class ChatCompletionClient:
    """Thin wrapper over an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 800,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, http_client=http_client
        )

    def complete(self, messages: list[dict]) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIError as exc:
            raise UpstreamServiceError(f"Chat completion failed: {exc}")

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise UpstreamServiceError("Chat completion returned an empty reply")
        return content


def get_chat_client(settings: Settings = Depends(get_settings)) -> ChatCompletionClient:
    if not settings.OPENAI_API_KEY:
        raise ServiceNotConfiguredError("OpenAI API key not configured")
    return ChatCompletionClient(
        api_key=settings.OPENAI_API_KEY,
        model=settings.CHAT_MODEL,
        base_url=settings.OPENAI_BASE_URL,
        temperature=settings.CHAT_TEMPERATURE,
        max_tokens=settings.CHAT_MAX_TOKENS,
        timeout=settings.HTTP_TIMEOUT,
    )


class SessionRegistry:
    """In-memory chat sessions keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def create(self, language: str) -> ChatSession:
        session = ChatSession(system_prompt=build_system_prompt(language), language=language)
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> ChatSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


sessions = SessionRegistry()


def get_session_registry() -> SessionRegistry:
    return sessions


def create_session_ticket(session: ChatSession, store: TicketStore) -> str:
    """Persist the finished report; a session only ever creates one ticket."""
    with session.lock:
        if session.ticket_created:
            return session.ticket_id

        for _ in range(TICKET_ID_ATTEMPTS):
            ticket_id = generate_ticket_id()
            try:
                store.create_ticket(session.build_ticket(ticket_id))
            except DuplicateTicketError:
                logger.warning("Ticket id %s already taken, retrying", ticket_id)
                continue
            session.mark_ticket_created(ticket_id)
            logger.info("Session %s created ticket %s", session.session_id, ticket_id)
            return ticket_id
    raise UpstreamServiceError("Could not allocate a unique ticket id")


def run_turn(session: ChatSession, client: ChatCompletionClient, store: TicketStore) -> ChatSession:
    """Ask the model for its next reply and act on the phase it reports."""
    with session.lock:
        reply = client.complete(session.messages)
        session.apply_assistant_message(reply)
        if session.needs_ticket:
            create_session_ticket(session, store)
    return session


def turn_out(session: ChatSession) -> TurnOut:
    return TurnOut(
        session_id=session.session_id,
        language=session.language,
        phase=session.phase,
        message=session.last_message,
        ticket_data=session.ticket_data,
        upload_allowed=session.upload_allowed,
        ticket_id=session.ticket_id,
    )
