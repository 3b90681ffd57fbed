# najm/upload/routes.py
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from najm.core.config import Settings, get_settings
from najm.core.errors import NajmError
from najm.speech import services as speech_service
from najm.ticket.schemas import AudioFileIn, ConversationIn
from najm.ticket.services import get_ticket_store
from najm.ticket.stores import TicketStore
from najm.upload import services as upload_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])


@router.post("/upload")
def upload_files(
    files: list[UploadFile] = File(...),
    type: str = Form(default=upload_service.DEFAULT_FOLDER),
    ticket_id: str | None = Form(default=None),
    settings: Settings = Depends(get_settings),
    store: TicketStore = Depends(get_ticket_store),
):
    folder = upload_service.resolve_folder(type)
    stored = upload_service.save_uploads(
        files, settings.UPLOAD_DIR, folder, upload_service.DOCUMENT_RULE, settings.MAX_FILE_SIZE
    )
    logger.info("Uploaded %d files (type: %s)", len(stored), type)

    if ticket_id:
        store.add_attachments(
            ticket_id, [s.to_attachment(type) for s in stored], create_missing=True
        )
        logger.info("Files saved to ticket: %s", ticket_id)

    return {
        "message": f"{len(stored)} file(s) uploaded successfully",
        "files": [{**s.to_dict(), "type": type} for s in stored],
    }


@router.post("/api/upload/audio")
def upload_audio(
    audio: UploadFile = File(...),
    ticket_id: str | None = Form(default=None),
    duration: float | None = Form(default=None),
    settings: Settings = Depends(get_settings),
    store: TicketStore = Depends(get_ticket_store),
):
    stored = upload_service.save_upload(
        audio,
        settings.UPLOAD_DIR,
        upload_service.AUDIO_FOLDER,
        upload_service.AUDIO_RULE,
        settings.MAX_FILE_SIZE,
    )
    if ticket_id:
        record = AudioFileIn(file_path=stored.filename, file_type=stored.mimetype, duration=duration)
        if not store.add_audio_file(ticket_id, record):
            upload_service.remove_file(stored.path)
            raise HTTPException(status_code=404, detail="Ticket not found")

    return {"message": "Audio uploaded successfully", "file": stored.to_dict()}


@router.post("/api/upload/transcribe")
def upload_and_transcribe(
    audio: UploadFile = File(...),
    ticket_id: str | None = Form(default=None),
    language: str = Form(default="ar"),
    settings: Settings = Depends(get_settings),
    store: TicketStore = Depends(get_ticket_store),
):
    stored = upload_service.save_upload(
        audio,
        settings.UPLOAD_DIR,
        upload_service.AUDIO_FOLDER,
        upload_service.AUDIO_RULE,
        settings.MAX_FILE_SIZE,
    )
    try:
        transcription = speech_service.transcribe_audio(
            stored.path.read_bytes(), stored.filename, stored.mimetype, settings, language=language
        )
    except NajmError:
        upload_service.remove_file(stored.path)
        raise

    if ticket_id:
        saved = store.add_audio_file(
            ticket_id, AudioFileIn(file_path=stored.filename, file_type=stored.mimetype)
        )
        if saved:
            store.add_conversation(
                ticket_id,
                ConversationIn(
                    role="user",
                    content=transcription or "-",
                    audio_path=stored.filename,
                    transcription=transcription,
                ),
            )
        else:
            logger.warning("Transcribed audio for unknown ticket %s", ticket_id)

    return {
        "message": "Audio transcribed successfully",
        "transcription": transcription,
        "file": stored.to_dict(),
    }


@router.get("/api/upload/audio/{filename}")
def download_audio(filename: str, settings: Settings = Depends(get_settings)):
    path = upload_service.stored_file_path(
        settings.UPLOAD_DIR, upload_service.AUDIO_FOLDER, filename
    )
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Audio file not found")
    return FileResponse(path)


@router.delete("/api/upload/audio/{filename}")
def delete_audio(
    filename: str,
    settings: Settings = Depends(get_settings),
    store: TicketStore = Depends(get_ticket_store),
):
    path = upload_service.stored_file_path(
        settings.UPLOAD_DIR, upload_service.AUDIO_FOLDER, filename
    )
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Audio file not found")
    store.remove_audio_files(filename)
    upload_service.remove_file(path)
    return {"message": "Audio file deleted successfully"}
