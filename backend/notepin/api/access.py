"""Helpers shared by the routers: ownership checks and response shapes."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, Request
from sqlmodel import Session

from notepin.config import Settings
from notepin.models.note_action import NoteAction
from notepin.models.recording import Recording
from notepin.repositories.recordings import RecordingsRepository
from notepin.services.anonymous import get_anonymous_id, is_owner


def client_metadata(request: Request, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = dict(extra or {})
    if request.client is not None and request.client.host:
        metadata["ip"] = request.client.host
    user_agent = request.headers.get("user-agent")
    if user_agent:
        metadata["user_agent"] = user_agent
    return metadata


def load_owned_recording(
    session: Session,
    request: Request,
    settings: Settings,
    recording_id: int,
    user_id: Optional[int],
) -> Recording:
    recording = RecordingsRepository(session).get(recording_id)
    if recording is None:
        raise HTTPException(status_code=404, detail="Recording not found")
    if not is_owner(recording, user_id, get_anonymous_id(request, settings)):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return recording


def iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def format_action(action: NoteAction) -> Dict[str, Any]:
    return {
        "id": action.id,
        "type": action.type,
        "source_items": action.source_items,
        "payload": action.payload,
        "status": action.status,
        "created_at": iso(action.created_at),
    }


def format_recording(recording: Recording, actions: Iterable[NoteAction] = ()) -> Dict[str, Any]:
    return {
        "id": recording.id,
        "status": recording.status,
        "audio_path": recording.audio_path,
        "duration_seconds": recording.duration_seconds,
        "transcript": recording.transcript,
        "ai_title": recording.ai_title,
        "ai_summary": recording.ai_summary,
        "ai_action_items": recording.ai_action_items,
        "ai_meta": recording.ai_meta,
        "created_at": iso(recording.created_at),
        "actions": [format_action(a) for a in actions],
    }


def format_duration(seconds: Optional[int]) -> str:
    if not seconds:
        return "00:00"
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
