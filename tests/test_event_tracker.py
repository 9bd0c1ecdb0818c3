from __future__ import annotations

import logging

from sqlmodel import Session

from notepin.repositories.events import EventsRepository
from notepin.services.event_tracker import EventTracker


def test_events_are_persisted(tracker, session) -> None:
    tracker.track("recording_created", recording_id=4, user_id=2, metadata={"anonymous": False})
    tracker.track("share_opened")
    tracker.flush()

    created = EventsRepository(session).list_by_name("recording_created")
    assert len(created) == 1
    assert created[0].recording_id == 4
    assert created[0].user_id == 2
    assert created[0].metadata_json == {"anonymous": False}
    opened = EventsRepository(session).list_by_name("share_opened")
    assert opened[0].metadata_json is None


def test_write_failures_never_reach_the_caller(engine, caplog) -> None:
    state = {"broken": True}

    def factory() -> Session:
        if state["broken"]:
            raise RuntimeError("database gone")
        return Session(engine)

    tracker = EventTracker(factory, maxsize=10)
    tracker.start()
    try:
        tracker.track("ai_ready", recording_id=1)
        tracker.flush()
        assert "Failed to record event" in caplog.text

        state["broken"] = False
        tracker.track("ai_ready", recording_id=2)
        tracker.flush()
    finally:
        tracker.close()

    with Session(engine) as session:
        assert [e.recording_id for e in EventsRepository(session).list_by_name("ai_ready")] == [2]


def test_full_queue_drops_events(session_factory, session, caplog) -> None:
    tracker = EventTracker(session_factory, maxsize=1)
    with caplog.at_level(logging.WARNING, logger="notepin.events"):
        tracker.track("first")
        tracker.track("second")

    assert "dropping event second" in caplog.text

    tracker.flush()
    tracker.close()
    assert len(EventsRepository(session).list_by_name("first")) == 1
    assert EventsRepository(session).list_by_name("second") == []
