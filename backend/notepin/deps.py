from __future__ import annotations

from functools import lru_cache
from typing import Iterator, Optional

from fastapi import Depends, Request, Response
from sqlmodel import Session

from notepin.config import Settings
from notepin.models.base import engine
from notepin.services.ai_client import OpenAIProvider
from notepin.services.anonymous import clear_anonymous_cookie, get_anonymous_id, link_anonymous_data
from notepin.services.event_tracker import EventTracker
from notepin.services.job_queue import JobQueue
from notepin.services.processing_job import RecordingProcessor


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


def session_factory() -> Session:
    return Session(engine)


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_event_tracker() -> EventTracker:
    settings = get_settings()
    return EventTracker(session_factory, maxsize=settings.event_queue_size)


@lru_cache
def get_job_queue() -> JobQueue:
    settings = get_settings()
    processor = RecordingProcessor(
        session_factory=session_factory,
        provider=OpenAIProvider(settings),
        tracker=get_event_tracker(),
        settings=settings,
    )
    return JobQueue(
        processor,
        tries=settings.job_tries,
        backoff_seconds=settings.job_backoff_seconds,
        workers=settings.queue_workers,
        driver=settings.queue_driver,
    )


def get_current_user_id(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    session: Session = Depends(get_session),
    tracker: EventTracker = Depends(get_event_tracker),
) -> Optional[int]:
    """User id asserted by the upstream auth layer, if any.

    The first signed-in request that still carries the anonymous cookie
    moves that visitor's recordings to the user and clears the cookie.
    """
    raw = request.headers.get(settings.user_header)
    if not raw:
        return None
    try:
        user_id = int(raw)
    except ValueError:
        return None

    anonymous_id = get_anonymous_id(request, settings)
    if anonymous_id:
        link_anonymous_data(session, tracker, anonymous_id, user_id)
        clear_anonymous_cookie(response, settings)
    return user_id
