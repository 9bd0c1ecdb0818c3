"""Best-effort analytics sink.

``track`` hands events to a bounded in-memory queue and returns at once; a
dedicated consumer thread persists them. Nothing that goes wrong here is
allowed to reach the caller.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from sqlmodel import Session

from notepin.models.event import Event
from notepin.repositories.events import EventsRepository

logger = logging.getLogger("notepin.events")


@dataclass
class PendingEvent:
    name: str
    recording_id: Optional[int] = None
    user_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


_STOP = object()


class EventTracker:
    def __init__(self, session_factory: Callable[[], Session], maxsize: int = 1000) -> None:
        self.session_factory = session_factory
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._consume, name="event-tracker", daemon=True)
            self._thread.start()

    def track(
        self,
        name: str,
        recording_id: Optional[int] = None,
        user_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            event = PendingEvent(
                name=name,
                recording_id=recording_id,
                user_id=user_id,
                metadata=dict(metadata or {}),
            )
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("Event queue full, dropping event %s", name)
        except Exception:
            logger.exception("Failed to enqueue event %s", name)

    def flush(self) -> None:
        """Block until every queued event has been handled."""
        if self._thread is None or not self._thread.is_alive():
            self.start()
        self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        thread = self._thread
        if thread is None or not thread.is_alive():
            return
        self._queue.put(_STOP)
        thread.join(timeout=timeout)
        self._thread = None

    def _consume(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._write(item)  # type: ignore[arg-type]
            except Exception:
                logger.exception("Failed to record event")
            finally:
                self._queue.task_done()

    def _write(self, pending: PendingEvent) -> None:
        with self.session_factory() as session:
            EventsRepository(session).add(
                Event(
                    name=pending.name,
                    recording_id=pending.recording_id,
                    user_id=pending.user_id,
                    metadata_json=pending.metadata or None,
                )
            )
