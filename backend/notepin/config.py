from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import os


def _default_base_dir() -> Path:
    return Path(os.getenv("NOTEPIN_HOME", "")) if os.getenv("NOTEPIN_HOME") else Path.cwd() / "storage"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NOTEPIN_", case_sensitive=False)

    app_name: str = "NotePin"
    app_url: str = "http://localhost:8000"
    # local|staging|production; anything but production exposes error details
    environment: str = "local"

    data_dir: Path = Field(default_factory=lambda: _default_base_dir() / "data")
    audio_dir: Path = Field(default_factory=lambda: _default_base_dir() / "audio")
    logs_dir: Path = Field(default_factory=lambda: _default_base_dir() / "logs")

    database_url: str = Field(
        default_factory=lambda: f"sqlite:///{_default_base_dir() / 'data' / 'notepin.db'}"
    )

    # AI provider
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    transcription_model: str = "gpt-4o-transcribe"
    chat_model: str = "gpt-4o"
    chat_temperature: float = 0.2
    ai_timeout_seconds: float = 120.0
    ai_max_retries: int = 2

    # Background processing
    queue_driver: Literal["thread", "sync"] = "thread"
    queue_workers: int = 2
    job_tries: int = 3
    job_backoff_seconds: float = 30.0

    event_queue_size: int = 1000

    # Ownership
    anonymous_cookie_name: str = "notepin_anon_id"
    anonymous_cookie_max_age: int = 60 * 60 * 24 * 365
    user_header: str = "X-User-Id"

    # Upload limits
    max_audio_bytes: int = 100 * 1024 * 1024
    max_audio_duration_seconds: int = 3600
    max_text_file_bytes: int = 2 * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def ensure_dirs(self) -> None:
        for d in [self.data_dir, self.audio_dir, self.logs_dir]:
            d.mkdir(parents=True, exist_ok=True)
