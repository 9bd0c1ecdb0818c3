from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from notepin.config import Settings
from notepin.models.base import init_db
from notepin.models.recording import Recording
from notepin.services.event_tracker import EventTracker
from notepin.services.job_queue import JobQueue
from notepin.services.processing_job import RecordingProcessor


def structured_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Ship on Friday",
        "summary": "Team agreed to ship Friday. API docs need an update first.",
        "action_items": [
            {
                "task": "Update API docs",
                "due_date": "2025-01-02",
                "owner": "Ahmed",
                "project": None,
                "confidence": "high",
            }
        ],
        "meta": {"language": "en", "source": "text", "decision_context": "Release planning"},
    }
    payload.update(overrides)
    return payload


class FakeProvider:
    transcription_model = "fake-transcribe"
    chat_model = "fake-chat"

    def __init__(self, responses: Optional[List[Any]] = None, transcript: Any = "Transcribed words from the audio.") -> None:
        self.responses: List[Any] = list(responses or [json.dumps(structured_payload())])
        self.transcript = transcript
        self.transcribe_calls: List[Path] = []
        self.complete_calls: List[tuple] = []

    def transcribe(self, audio_path: Path) -> str:
        self.transcribe_calls.append(audio_path)
        if isinstance(self.transcript, Exception):
            raise self.transcript
        return self.transcript

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        self.complete_calls.append((system_prompt, user_prompt))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    s = Settings(
        data_dir=tmp_path / "data",
        audio_dir=tmp_path / "audio",
        logs_dir=tmp_path / "logs",
        database_url=f"sqlite:///{tmp_path / 'data' / 'test.db'}",
        environment="local",
        queue_driver="sync",
        job_backoff_seconds=0,
        app_url="http://notes.test",
    )
    s.ensure_dirs()
    return s


@pytest.fixture
def engine(settings: Settings) -> Iterator[Engine]:
    engine = create_engine(settings.database_url, connect_args={"check_same_thread": False})
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine):
    def factory() -> Session:
        return Session(engine)

    return factory


@pytest.fixture
def session(session_factory) -> Iterator[Session]:
    with session_factory() as s:
        yield s


@pytest.fixture
def tracker(session_factory) -> Iterator[EventTracker]:
    t = EventTracker(session_factory, maxsize=100)
    t.start()
    yield t
    t.close()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def processor(session_factory, provider: FakeProvider, tracker: EventTracker, settings: Settings) -> RecordingProcessor:
    return RecordingProcessor(session_factory, provider, tracker, settings)


@pytest.fixture
def job_queue(processor: RecordingProcessor, settings: Settings) -> JobQueue:
    return JobQueue(processor, tries=settings.job_tries, backoff_seconds=0, driver="sync")


@pytest.fixture
def make_recording(session_factory):
    def _make(**fields: Any) -> Recording:
        with session_factory() as s:
            recording = Recording(**fields)
            s.add(recording)
            s.commit()
            s.refresh(recording)
            return recording

    return _make


@pytest.fixture
def load_recording(session_factory):
    def _load(recording_id: int) -> Recording:
        with session_factory() as s:
            recording = s.get(Recording, recording_id)
            assert recording is not None
            return recording

    return _load
