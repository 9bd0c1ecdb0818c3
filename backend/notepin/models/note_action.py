from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from notepin.models.base import utc_now


class NoteAction(SQLModel, table=True):
    __tablename__ = "note_action"

    id: Optional[int] = Field(default=None, primary_key=True)
    recording_id: int = Field(index=True, foreign_key="recording.id")
    type: str  # task|meeting|reminder
    source_items: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    status: str = Field(default="open")  # open|done|cancelled
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
