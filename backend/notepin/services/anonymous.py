"""Ownership of recordings made before sign-in."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import Request, Response
from sqlmodel import Session

from notepin.config import Settings
from notepin.models.recording import Recording
from notepin.repositories.recordings import RecordingsRepository
from notepin.services.event_tracker import EventTracker

logger = logging.getLogger("notepin.anonymous")


def get_anonymous_id(request: Request, settings: Settings) -> Optional[str]:
    return request.cookies.get(settings.anonymous_cookie_name) or None


def resolve_anonymous_id(request: Request, settings: Settings) -> str:
    return get_anonymous_id(request, settings) or str(uuid.uuid4())


def set_anonymous_cookie(response: Response, anonymous_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.anonymous_cookie_name,
        value=anonymous_id,
        max_age=settings.anonymous_cookie_max_age,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )


def clear_anonymous_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.anonymous_cookie_name,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )


def is_owner(recording: Recording, user_id: Optional[int], anonymous_id: Optional[str]) -> bool:
    if user_id is not None:
        return recording.user_id == user_id
    return bool(anonymous_id) and recording.anonymous_id == anonymous_id


def link_anonymous_data(session: Session, tracker: EventTracker, anonymous_id: str, user_id: int) -> int:
    """Attach an anonymous visitor's recordings to ``user_id``.

    Returns the number of recordings moved.
    """
    count = RecordingsRepository(session).link_anonymous(anonymous_id, user_id)
    if count:
        logger.info("Linked %d anonymous recordings to user %s", count, user_id)
        tracker.track(
            "anonymous_linked",
            user_id=user_id,
            metadata={"recordings_linked": count, "anonymous_id": anonymous_id},
        )
    return count
