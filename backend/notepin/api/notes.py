from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Dict, List, Literal, Optional
from pathlib import Path
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator
from sqlmodel import Session

from notepin.api.access import (
    client_metadata,
    format_action,
    format_duration,
    iso,
    load_owned_recording,
)
from notepin.config import Settings
from notepin.deps import (
    get_current_user_id,
    get_event_tracker,
    get_job_queue,
    get_session,
    get_settings,
)
from notepin.models.base import utc_now
from notepin.models.note_action import NoteAction
from notepin.models.recording import Recording, RecordingStatus
from notepin.repositories.note_actions import NoteActionsRepository
from notepin.repositories.recordings import RecordingsRepository
from notepin.services.anonymous import get_anonymous_id, resolve_anonymous_id, set_anonymous_cookie
from notepin.services.event_tracker import EventTracker
from notepin.services.job_queue import JobQueue
from notepin.services.text_input import MAX_TEXT_LENGTH, MIN_TEXT_LENGTH, normalize_text

logger = logging.getLogger("notepin.api")


router = APIRouter(prefix="/notes", tags=["notes"])

TEXT_FILE_SUFFIXES = {".txt", ".md"}

ItemText = Annotated[str, Field(min_length=2, max_length=200)]
SourceItem = Annotated[str, Field(min_length=1, max_length=200)]


class NoteOverrideRequest(BaseModel):
    title: str = Field(min_length=2, max_length=120)
    summary: str = Field(min_length=2, max_length=4000)
    action_items: List[ItemText] = Field(max_length=20)


class ActionStateEntry(BaseModel):
    done: bool


class ActionStateRequest(BaseModel):
    state: Dict[str, ActionStateEntry]


class NoteActionCreate(BaseModel):
    type: Literal["task", "meeting", "reminder"]
    selected_items: List[SourceItem] = Field(min_length=1, max_length=10)
    title: str = Field(min_length=2, max_length=120)
    # task
    due_date: Optional[dt.date] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    # meeting
    date: Optional[dt.date] = None
    time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    duration_minutes: Optional[int] = Field(default=None, ge=15, le=180)
    attendees: Optional[str] = Field(default=None, max_length=500)
    # reminder
    remind_at: Optional[dt.datetime] = None
    reminder_note: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_type_fields(self) -> "NoteActionCreate":
        if self.type == "meeting" and (self.date is None or self.time is None):
            raise ValueError("Meetings require date and time")
        if self.type == "reminder" and self.remind_at is None:
            raise ValueError("Reminders require remind_at")
        return self

    def build_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": self.title}
        if self.type == "task":
            payload["due_date"] = iso(self.due_date)
            payload["priority"] = self.priority or "medium"
        elif self.type == "meeting":
            payload["date"] = iso(self.date)
            payload["time"] = self.time
            payload["duration_minutes"] = self.duration_minutes or 30
            payload["attendees"] = self.attendees
        elif self.type == "reminder":
            payload["remind_at"] = iso(self.remind_at)
            payload["reminder_note"] = self.reminder_note
        return payload


class NoteActionStatusUpdate(BaseModel):
    status: Literal["open", "done", "cancelled"]


def _validation_error(field: str, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": error, "errors": {field: [message]}})


@router.get("")
def list_notes(
    request: Request,
    limit: int = 100,
    offset: int = 0,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, List[Dict[str, Any]]]:
    anonymous_id = None if user_id is not None else get_anonymous_id(request, settings)
    recordings = RecordingsRepository(session).list_for_owner(
        user_id=user_id, anonymous_id=anonymous_id, limit=limit, offset=offset
    )
    notes = [
        {
            "id": r.id,
            "title": r.ai_title or "",
            "summary": r.ai_summary or "",
            "action_items_count": len(r.ai_action_items or []),
            "completed_count": 0,
            "duration": format_duration(r.duration_seconds),
            "created_at": iso(r.created_at),
            "status": r.status,
        }
        for r in recordings
    ]
    return {"notes": notes}


@router.post("/text")
def create_text_note(
    request: Request,
    response: Response,
    text: Optional[str] = Form(default=None),
    text_file: Optional[UploadFile] = File(default=None),
    anonymous_id: Optional[str] = Form(default=None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
    queue: JobQueue = Depends(get_job_queue),
    tracker: EventTracker = Depends(get_event_tracker),
):
    logger.info("Text note creation started (has_text=%s, has_file=%s)", bool(text and text.strip()), text_file is not None)
    if anonymous_id is not None and len(anonymous_id) > 64:
        raise HTTPException(status_code=422, detail="Invalid anonymous_id")

    content: Optional[str] = None
    input_method = "paste"

    # Pasted text wins over an uploaded file
    if text and text.strip():
        if len(text) < MIN_TEXT_LENGTH:
            return _validation_error("text", "Text too short", f"Text must be at least {MIN_TEXT_LENGTH} characters")
        if len(text) > MAX_TEXT_LENGTH:
            return _validation_error("text", "Text too long", f"Text may not exceed {MAX_TEXT_LENGTH} characters")
        content = text
    elif text_file is not None and text_file.filename:
        suffix = Path(text_file.filename).suffix.lower()
        if suffix not in TEXT_FILE_SUFFIXES:
            return _validation_error("text_file", "Unsupported file type", "Only .txt and .md files are accepted")
        raw = text_file.file.read(settings.max_text_file_bytes + 1)
        if len(raw) > settings.max_text_file_bytes:
            return _validation_error("text_file", "File too large", "File may not exceed 2 MB")
        content = normalize_text(raw)
        input_method = "file"
        if not content:
            return _validation_error("text_file", "File is empty", "File is empty")
        if len(content) < MIN_TEXT_LENGTH:
            return _validation_error("text_file", "File content too short", f"Text must be at least {MIN_TEXT_LENGTH} characters")
        if len(content) > MAX_TEXT_LENGTH:
            return _validation_error("text_file", "File content too long", f"Text may not exceed {MAX_TEXT_LENGTH} characters")

    if not content:
        return _validation_error("text", "No text provided", "Text or a text file is required")

    anon: Optional[str] = None
    if user_id is None:
        anon = anonymous_id or resolve_anonymous_id(request, settings)

    recording = RecordingsRepository(session).create(
        Recording(
            user_id=user_id,
            anonymous_id=anon,
            status=RecordingStatus.PROCESSING.value,
            transcript=content,
            ai_meta={"source": "text", "input_method": input_method},
        )
    )
    logger.info("Text note %s created (input_method=%s, length=%d)", recording.id, input_method, len(content))

    tracker.track(
        "recording_created",
        recording_id=recording.id,
        user_id=user_id,
        metadata=client_metadata(
            request,
            {
                "input_type": "text",
                "input_method": input_method,
                "text_length": len(content),
                "anonymous": user_id is None,
            },
        ),
    )
    tracker.track(
        "ai_processing_started",
        recording_id=recording.id,
        user_id=user_id,
        metadata=client_metadata(
            request, {"auto_started": True, "input_type": "text", "input_method": input_method}
        ),
    )
    queue.dispatch(recording.id)  # type: ignore[arg-type]

    if anon:
        set_anonymous_cookie(response, anon, settings)
    return {"id": recording.id, "status": recording.status}


@router.patch("/{recording_id}/override")
def update_override(
    recording_id: int,
    body: NoteOverrideRequest,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, Any]:
    recording = load_owned_recording(session, request, settings, recording_id, user_id)

    # Overrides sit next to the AI fields; the AI output itself is kept
    meta = dict(recording.ai_meta or {})
    meta["user_overrides"] = {
        "title": body.title,
        "summary": body.summary,
        "action_items": list(body.action_items),
    }
    meta["edited_at"] = utc_now().isoformat()
    recording.ai_meta = meta
    recording = RecordingsRepository(session).update(recording)
    return {"success": True, "ai_meta": recording.ai_meta}


@router.patch("/{recording_id}/action-state")
def update_action_state(
    recording_id: int,
    body: ActionStateRequest,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, Any]:
    recording = load_owned_recording(session, request, settings, recording_id, user_id)

    meta = dict(recording.ai_meta or {})
    meta["action_state"] = {key: entry.model_dump() for key, entry in body.state.items()}
    recording.ai_meta = meta
    recording = RecordingsRepository(session).update(recording)
    return {"success": True, "ai_meta": recording.ai_meta}


@router.post("/{recording_id}/actions")
def create_note_action(
    recording_id: int,
    body: NoteActionCreate,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, Any]:
    recording = load_owned_recording(session, request, settings, recording_id, user_id)
    action = NoteActionsRepository(session).create(
        NoteAction(
            recording_id=recording.id,  # type: ignore[arg-type]
            type=body.type,
            source_items=list(body.selected_items),
            payload=body.build_payload(),
            status="open",
        )
    )
    return {"success": True, "action": format_action(action)}


@router.patch("/{recording_id}/actions/{action_id}")
def update_note_action(
    recording_id: int,
    action_id: int,
    body: NoteActionStatusUpdate,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, Any]:
    load_owned_recording(session, request, settings, recording_id, user_id)
    repo = NoteActionsRepository(session)
    action = repo.get_for_recording(recording_id, action_id)
    if action is None:
        raise HTTPException(status_code=404, detail="Action not found")
    action.status = body.status
    action = repo.update(action)
    return {"success": True, "action": format_action(action)}


@router.delete("/{recording_id}/actions/{action_id}")
def delete_note_action(
    recording_id: int,
    action_id: int,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, bool]:
    load_owned_recording(session, request, settings, recording_id, user_id)
    repo = NoteActionsRepository(session)
    action = repo.get_for_recording(recording_id, action_id)
    if action is None:
        raise HTTPException(status_code=404, detail="Action not found")
    repo.delete(action)
    return {"success": True}
