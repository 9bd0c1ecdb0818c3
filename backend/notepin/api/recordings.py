from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from sqlmodel import Session

from notepin.api.access import client_metadata, format_recording, load_owned_recording
from notepin.config import Settings
from notepin.deps import (
    get_current_user_id,
    get_event_tracker,
    get_job_queue,
    get_session,
    get_settings,
)
from notepin.models.recording import Recording, RecordingStatus
from notepin.repositories.note_actions import NoteActionsRepository
from notepin.repositories.recordings import RecordingsRepository
from notepin.repositories.shares import SharesRepository
from notepin.services.anonymous import resolve_anonymous_id, set_anonymous_cookie
from notepin.services.event_tracker import EventTracker
from notepin.services.job_queue import JobQueue
from notepin.services.state import RetryDecision, can_retry

logger = logging.getLogger("notepin.api")


router = APIRouter(prefix="/recordings", tags=["recordings"])

ALLOWED_VIDEO_TYPES = {"video/webm", "video/mp4"}
_CHUNK_SIZE = 1024 * 1024


def _is_audio_upload(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    return content_type.startswith("audio/") or content_type in ALLOWED_VIDEO_TYPES


def _store_audio(upload: UploadFile, settings: Settings) -> str:
    """Copy the upload under ``audio_dir/recordings`` and return its relative path."""
    suffix = Path(upload.filename or "").suffix.lower() or ".webm"
    relative = Path("recordings") / f"{uuid.uuid4().hex}{suffix}"
    target = Path(settings.audio_dir) / relative
    target.parent.mkdir(parents=True, exist_ok=True)

    written = 0
    with open(target, "wb") as out:
        while True:
            chunk = upload.file.read(_CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > settings.max_audio_bytes:
                out.close()
                target.unlink(missing_ok=True)
                raise HTTPException(status_code=422, detail="Audio file is too large")
            out.write(chunk)
    if written == 0:
        target.unlink(missing_ok=True)
        raise HTTPException(status_code=422, detail="Audio file is empty")
    return relative.as_posix()


@router.post("")
def upload_recording(
    request: Request,
    response: Response,
    audio: UploadFile = File(...),
    duration: Optional[int] = Form(default=None),
    anonymous_id: Optional[str] = Form(default=None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
    queue: JobQueue = Depends(get_job_queue),
    tracker: EventTracker = Depends(get_event_tracker),
) -> Dict[str, Any]:
    logger.info(
        "Recording upload started (content_type=%s, filename=%s)", audio.content_type, audio.filename
    )
    if not _is_audio_upload(audio):
        raise HTTPException(status_code=422, detail="Unsupported audio type")
    if duration is not None and not (0 <= duration <= settings.max_audio_duration_seconds):
        raise HTTPException(status_code=422, detail="Invalid duration")
    if anonymous_id is not None and len(anonymous_id) > 64:
        raise HTTPException(status_code=422, detail="Invalid anonymous_id")

    audio_path = _store_audio(audio, settings)

    anon: Optional[str] = None
    if user_id is None:
        anon = anonymous_id or resolve_anonymous_id(request, settings)

    recording = RecordingsRepository(session).create(
        Recording(
            user_id=user_id,
            anonymous_id=anon,
            status=RecordingStatus.PROCESSING.value,
            audio_path=audio_path,
            duration_seconds=duration,
        )
    )
    logger.info("Recording %s created from upload", recording.id)

    tracker.track(
        "recording_created",
        recording_id=recording.id,
        user_id=user_id,
        metadata=client_metadata(
            request, {"duration_seconds": recording.duration_seconds, "anonymous": user_id is None}
        ),
    )
    tracker.track(
        "ai_processing_started",
        recording_id=recording.id,
        user_id=user_id,
        metadata=client_metadata(request, {"auto_started": True}),
    )
    queue.dispatch(recording.id)  # type: ignore[arg-type]

    if anon:
        set_anonymous_cookie(response, anon, settings)
    return {"id": recording.id, "status": recording.status}


@router.get("/{recording_id}")
def get_recording(
    recording_id: int,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
) -> Dict[str, Any]:
    recording = load_owned_recording(session, request, settings, recording_id, user_id)
    actions = NoteActionsRepository(session).list_by_recording(recording_id)
    return {"recording": format_recording(recording, actions)}


@router.post("/{recording_id}/process")
def retry_processing(
    recording_id: int,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
    queue: JobQueue = Depends(get_job_queue),
    tracker: EventTracker = Depends(get_event_tracker),
):
    recording = load_owned_recording(session, request, settings, recording_id, user_id)

    decision = can_retry(recording.status)
    if decision is RetryDecision.ALREADY_PROCESSED:
        return JSONResponse(status_code=422, content={"error": "Recording is already processed."})
    if decision is RetryDecision.IN_PROGRESS:
        return {"id": recording.id, "status": recording.status, "message": "Processing already in progress."}
    if decision is RetryDecision.NOT_ALLOWED:
        return JSONResponse(
            status_code=422, content={"error": "Recording cannot be processed in current state."}
        )

    recording.status = RecordingStatus.PROCESSING.value
    recording = RecordingsRepository(session).update(recording)

    tracker.track(
        "ai_processing_started",
        recording_id=recording.id,
        user_id=recording.user_id,
        metadata=client_metadata(request, {"retry": True}),
    )
    queue.dispatch(recording.id)  # type: ignore[arg-type]
    return {"id": recording.id, "status": recording.status}


@router.post("/{recording_id}/share")
def create_share(
    recording_id: int,
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Depends(get_current_user_id),
    tracker: EventTracker = Depends(get_event_tracker),
) -> Dict[str, str]:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    recording = RecordingsRepository(session).get(recording_id)
    if recording is None:
        raise HTTPException(status_code=404, detail="Recording not found")
    if recording.user_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized")

    share, created = SharesRepository(session).get_or_create_for_recording(recording_id)
    if created:
        tracker.track(
            "share_created",
            recording_id=recording_id,
            user_id=user_id,
            metadata=client_metadata(request, {"share_token": share.token}),
        )
    return {"url": f"{settings.app_url.rstrip('/')}/share/{share.token}", "token": share.token}
