from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, Text
from sqlmodel import SQLModel, Field

from notepin.models.base import utc_now


class RecordingStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class Recording(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # Ownership: user_id once linked, anonymous_id before that
    user_id: Optional[int] = Field(default=None, index=True)
    anonymous_id: Optional[str] = Field(default=None, index=True, max_length=64)
    status: str = Field(default=RecordingStatus.UPLOADED.value, index=True)
    audio_path: Optional[str] = None  # relative to Settings.audio_dir
    duration_seconds: Optional[int] = None
    transcript: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    ai_title: Optional[str] = None
    ai_summary: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    ai_action_items: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    ai_meta: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
