from __future__ import annotations

from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from notepin.models.base import utc_now


class Share(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recording_id: int = Field(index=True, unique=True, foreign_key="recording.id")
    token: str = Field(index=True, unique=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now)
