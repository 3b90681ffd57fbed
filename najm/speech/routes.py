# najm/speech/routes.py
from fastapi import APIRouter, Depends, File, Form, UploadFile

from najm.core.config import Settings, get_settings
from najm.core.errors import UploadRejectedError
from najm.speech import services as speech_service
from najm.speech.schemas import STTOut, TTSOut, TTSRequest
from najm.upload.services import AUDIO_RULE

router = APIRouter(tags=["Speech"])


@router.post("/tts", response_model=TTSOut)
def tts(payload: TTSRequest, settings: Settings = Depends(get_settings)):
    audio = speech_service.synthesize_speech(payload.text, settings, language=payload.language)
    return TTSOut(
        audio=speech_service.to_data_url(audio),
        format=speech_service.AUDIO_FORMAT,
    )


@router.post("/stt", response_model=STTOut)
def stt(
    audio: UploadFile = File(...),
    language: str = Form(default="ar"),
    settings: Settings = Depends(get_settings),
):
    content_type = audio.content_type or ""
    if not AUDIO_RULE.allows(content_type):
        raise UploadRejectedError(AUDIO_RULE.message)
    data = audio.file.read(settings.MAX_FILE_SIZE + 1)
    if len(data) > settings.MAX_FILE_SIZE:
        raise UploadRejectedError(
            f"File too large. Maximum size is {settings.MAX_FILE_SIZE // (1024 * 1024)}MB"
        )
    if not data:
        raise UploadRejectedError("Audio file is empty")

    text = speech_service.transcribe_audio(
        data, audio.filename or "audio.webm", content_type, settings, language=language
    )
    return STTOut(transcription=text, language=language)
