# najm/speech/services.py
"""
Text-to-speech and speech-to-text proxies.

TTS goes to ElevenLabs, STT to Groq's Whisper through its OpenAI-compatible
endpoint. Both are single request/response calls; failures surface as
``UpstreamServiceError`` and missing credentials as
``ServiceNotConfiguredError``.
"""

import base64
import logging

import httpx
import openai
from openai import OpenAI

from najm.core.config import Settings
from najm.core.errors import ServiceNotConfiguredError, UpstreamServiceError

logger = logging.getLogger(__name__)

ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
AUDIO_FORMAT = "audio/mpeg"

VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}


def synthesize_speech(
    text: str,
    settings: Settings,
    language: str = "ar",
    client: httpx.Client | None = None,
) -> bytes:
    """Return MP3 bytes for ``text``."""
    if not settings.ELEVENLABS_API_KEY or not settings.ELEVENLABS_VOICE_ID:
        raise ServiceNotConfiguredError("ElevenLabs credentials not configured")

    logger.info("TTS request: %r (%s)", text[:50], language)
    headers = {
        "Accept": AUDIO_FORMAT,
        "Content-Type": "application/json",
        "xi-api-key": settings.ELEVENLABS_API_KEY,
    }
    payload = {
        "text": text,
        "model_id": settings.ELEVENLABS_MODEL,
        "voice_settings": VOICE_SETTINGS,
    }
    url = ELEVENLABS_URL.format(voice_id=settings.ELEVENLABS_VOICE_ID)

    owns_client = client is None
    client = client or httpx.Client(timeout=settings.HTTP_TIMEOUT)
    try:
        response = client.post(url, json=payload, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise UpstreamServiceError(
            f"ElevenLabs API error: {exc.response.status_code} - {exc.response.text[:200]}"
        )
    except httpx.HTTPError as exc:
        raise UpstreamServiceError(f"ElevenLabs request failed: {exc}")
    finally:
        if owns_client:
            client.close()

    return response.content


def to_data_url(audio: bytes, mimetype: str = AUDIO_FORMAT) -> str:
    return f"data:{mimetype};base64,{base64.b64encode(audio).decode('ascii')}"


def transcribe_audio(
    audio: bytes,
    filename: str,
    content_type: str,
    settings: Settings,
    language: str = "ar",
    http_client: httpx.Client | None = None,
) -> str:
    if not settings.GROQ_API_KEY:
        raise ServiceNotConfiguredError("Groq API key not configured")

    logger.info("STT request: %s (%s, %d bytes)", filename, language, len(audio))
    client = OpenAI(
        api_key=settings.GROQ_API_KEY,
        base_url=settings.GROQ_BASE_URL,
        timeout=settings.HTTP_TIMEOUT,
        http_client=http_client,
    )
    try:
        result = client.audio.transcriptions.create(
            model=settings.STT_MODEL,
            file=(filename, audio, content_type),
            language=language,
            response_format="json",
        )
    except openai.APIError as exc:
        raise UpstreamServiceError(f"Groq API error: {exc}")

    text = (result.text or "").strip()
    logger.info("STT result: %r", text[:80])
    return text
