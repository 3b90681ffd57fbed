# najm/speech/schemas.py
from pydantic import BaseModel, Field


class TTSRequest(BaseModel):
    text: str = Field(..., min_length=1)
    language: str = "ar"


class TTSOut(BaseModel):
    audio: str
    format: str


class STTOut(BaseModel):
    transcription: str
    language: str
