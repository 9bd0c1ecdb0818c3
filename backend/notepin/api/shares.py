from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from notepin.api.access import client_metadata, iso
from notepin.deps import get_event_tracker, get_session
from notepin.repositories.recordings import RecordingsRepository
from notepin.repositories.shares import SharesRepository
from notepin.services.event_tracker import EventTracker


router = APIRouter(prefix="/share", tags=["share"])


@router.get("/{token}")
def show_share(
    token: str,
    request: Request,
    session: Session = Depends(get_session),
    tracker: EventTracker = Depends(get_event_tracker),
) -> Dict[str, Any]:
    share = SharesRepository(session).get_by_token(token)
    recording = RecordingsRepository(session).get(share.recording_id) if share is not None else None
    if share is None or recording is None:
        raise HTTPException(status_code=404, detail="Share not found")

    tracker.track(
        "share_opened",
        recording_id=recording.id,
        metadata=client_metadata(request, {"share_token": token}),
    )
    return {
        "recording": {
            "ai_title": recording.ai_title,
            "ai_summary": recording.ai_summary,
            "ai_action_items": recording.ai_action_items or [],
            "duration_seconds": recording.duration_seconds,
            "created_at": iso(recording.created_at),
        }
    }
