from __future__ import annotations

from notepin.models.recording import Recording
from notepin.repositories.events import EventsRepository
from notepin.services.anonymous import is_owner, link_anonymous_data


def test_linking_moves_only_unowned_recordings(session, tracker, make_recording, load_recording) -> None:
    mine = make_recording(anonymous_id="anon-1", status="ready")
    also_mine = make_recording(anonymous_id="anon-1", status="failed")
    someone_elses = make_recording(anonymous_id="anon-2", status="ready")
    already_linked = make_recording(anonymous_id="anon-1", user_id=99, status="ready")

    count = link_anonymous_data(session, tracker, "anon-1", 5)
    tracker.flush()

    assert count == 2
    for rec in (mine, also_mine):
        stored = load_recording(rec.id)
        assert stored.user_id == 5
        assert stored.anonymous_id is None
    assert load_recording(someone_elses.id).user_id is None
    assert load_recording(already_linked.id).user_id == 99

    events = EventsRepository(session).list_by_name("anonymous_linked")
    assert len(events) == 1
    assert events[0].user_id == 5
    assert events[0].metadata_json == {"recordings_linked": 2, "anonymous_id": "anon-1"}


def test_nothing_to_link_tracks_nothing(session, tracker) -> None:
    assert link_anonymous_data(session, tracker, "nobody", 5) == 0
    tracker.flush()

    assert EventsRepository(session).list_by_name("anonymous_linked") == []


def test_ownership_rules() -> None:
    owned = Recording(user_id=3)
    anonymous = Recording(anonymous_id="abc")

    assert is_owner(owned, 3, None)
    assert not is_owner(owned, 4, None)
    assert is_owner(anonymous, None, "abc")
    assert not is_owner(anonymous, None, None)
    # Signed-in users do not inherit anonymous recordings by cookie
    assert not is_owner(anonymous, 3, "abc")
