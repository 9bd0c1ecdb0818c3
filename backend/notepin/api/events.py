from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from notepin.api.access import client_metadata
from notepin.deps import get_current_user_id, get_event_tracker
from notepin.services.event_tracker import EventTracker


router = APIRouter(prefix="/api/events", tags=["events"])

# Events the browser is allowed to report
ALLOWED_CLIENT_EVENTS = {"auth_prompt_shown"}


class ClientEvent(BaseModel):
    name: str = Field(max_length=100)
    metadata: Optional[Dict[str, Any]] = None


@router.post("")
def track_event(
    body: ClientEvent,
    request: Request,
    user_id: Optional[int] = Depends(get_current_user_id),
    tracker: EventTracker = Depends(get_event_tracker),
):
    if body.name not in ALLOWED_CLIENT_EVENTS:
        return JSONResponse(status_code=400, content={"error": "Invalid event"})
    tracker.track(body.name, user_id=user_id, metadata=client_metadata(request, body.metadata))
    return {"success": True}
