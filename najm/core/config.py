# najm/core/config.py
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "Najm Assistant"
    APP_DESC: str = "AI-assisted accident reporting backend"
    APP_VERSION: str = "1.0.0"

    # Storage
    DATABASE_URL: str = Field(default="sqlite:///./najm.db")
    TICKET_STORE: str = Field(default="sqlite", pattern="^(sqlite|json)$")
    DATA_FILE: Path = Path("./tickets.json")
    UPLOAD_DIR: Path = Path("./uploads")
    MAX_FILE_SIZE: int = 10 * 1024 * 1024

    # CORS origins, comma separated
    CORS_ORIGINS: str = "*"

    # Auth
    JWT_SECRET: str = "supersecret"
    JWT_EXPIRES_HOURS: int = 24
    ADMIN_USER: str = "admin"
    ADMIN_PASS: str = "1234"

    # Chat completion
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    CHAT_MODEL: str = "gpt-4o"
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 800

    # Speech-to-text (Groq Whisper, OpenAI-compatible)
    GROQ_API_KEY: str | None = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    STT_MODEL: str = "whisper-large-v3-turbo"

    # Text-to-speech
    ELEVENLABS_API_KEY: str | None = None
    ELEVENLABS_VOICE_ID: str | None = None
    ELEVENLABS_MODEL: str = "eleven_multilingual_v2"

    # OCR
    AZURE_COMPUTER_VISION_KEY: str | None = None
    AZURE_COMPUTER_VISION_ENDPOINT: str | None = None
    OCR_POLL_INTERVAL: float = 1.0
    OCR_MAX_POLLS: int = 30

    HTTP_TIMEOUT: float = 30.0
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    DEBUG_REQUESTS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
