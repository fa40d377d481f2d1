from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "mindbank"
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # In unit tests / CI we avoid long startup retries against external deps.
    ENSURE_EXTERNAL_DEPS_ON_STARTUP: bool = True

    DATABASE_URL: str

    REDIS_URL: str = "redis://localhost:6379/0"
    # Fan item changes out to other processes over Redis pub/sub.
    REALTIME_RELAY_ENABLED: bool = False

    MINIO_ENABLED: bool = True
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET: str = "mindbank"
    MINIO_SECURE: bool = False
    LOCAL_OBJECT_STORE_DIR: str = ".objects"

    # Language model (classification, translation, insights)
    GEMINI_API_KEY: str | None = None
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-2.5-flash-preview-09-2025"

    # Speech synthesis
    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    TTS_MODEL: str = "tts-1"
    TTS_DEFAULT_VOICE: str = "alloy"

    # Book metadata search
    GOOGLE_BOOKS_API_BASE: str = "https://www.googleapis.com/books/v1"
    GOOGLE_BOOKS_API_KEY: str | None = None
    BOOK_SEARCH_LIMIT: int = 5

    # Applies to every outbound call; a timeout surfaces as that call's failure.
    EXTERNAL_TIMEOUT_S: float = 20.0

    AUDIO_CACHE_MAX_ENTRIES: int = 64

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
