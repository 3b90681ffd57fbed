# najm/chat/routes.py
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from najm.chat import services as chat_service
from najm.chat.schemas import SessionStart, TurnOut, UserMessage
from najm.chat.services import ChatCompletionClient, SessionRegistry
from najm.chat.state import ChatSession
from najm.core.config import Settings, get_settings
from najm.ticket.services import get_ticket_store
from najm.ticket.stores import TicketStore
from najm.upload import services as upload_service

router = APIRouter(prefix="/api/chat", tags=["Chat"])


def _get_session(registry: SessionRegistry, session_id: str) -> ChatSession:
    session = registry.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return session


@router.post("/sessions", response_model=TurnOut, status_code=201)
def start_session(
    payload: SessionStart,
    registry: SessionRegistry = Depends(chat_service.get_session_registry),
    client: ChatCompletionClient = Depends(chat_service.get_chat_client),
    store: TicketStore = Depends(get_ticket_store),
):
    session = registry.create(payload.language)
    try:
        chat_service.run_turn(session, client, store)
    except Exception:
        registry.remove(session.session_id)
        raise
    return chat_service.turn_out(session)


@router.get("/sessions/{session_id}", response_model=TurnOut)
def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(chat_service.get_session_registry),
):
    session = _get_session(registry, session_id)
    with session.lock:
        return chat_service.turn_out(session)


@router.post("/sessions/{session_id}/messages", response_model=TurnOut)
def send_message(
    session_id: str,
    payload: UserMessage,
    registry: SessionRegistry = Depends(chat_service.get_session_registry),
    client: ChatCompletionClient = Depends(chat_service.get_chat_client),
    store: TicketStore = Depends(get_ticket_store),
):
    session = _get_session(registry, session_id)
    with session.lock:
        session.add_user_message(payload.content.strip())
        chat_service.run_turn(session, client, store)
        return chat_service.turn_out(session)


@router.post("/sessions/{session_id}/uploads", response_model=TurnOut)
def upload_image(
    session_id: str,
    image: UploadFile = File(...),
    registry: SessionRegistry = Depends(chat_service.get_session_registry),
    client: ChatCompletionClient = Depends(chat_service.get_chat_client),
    store: TicketStore = Depends(get_ticket_store),
    settings: Settings = Depends(get_settings),
):
    session = _get_session(registry, session_id)
    with session.lock:
        if not session.upload_allowed:
            raise HTTPException(
                status_code=409,
                detail="Please wait for instructions before uploading images",
            )
        stored = upload_service.save_upload(
            image,
            settings.UPLOAD_DIR,
            session.upload_folder,
            upload_service.IMAGE_RULE,
            settings.MAX_FILE_SIZE,
        )
        session.record_upload(stored.filename, stored.url)
        chat_service.run_turn(session, client, store)
        return chat_service.turn_out(session)


@router.delete("/sessions/{session_id}")
def end_session(
    session_id: str,
    registry: SessionRegistry = Depends(chat_service.get_session_registry),
):
    if not registry.remove(session_id):
        raise HTTPException(status_code=404, detail="Chat session not found")
    return {"message": "Chat session ended", "session_id": session_id}
