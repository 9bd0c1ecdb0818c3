"""In-process job queue with fixed-backoff retries.

Jobs are keyed by recording id. A key that is already queued, running or
waiting for a retry is not queued again, so duplicate dispatches for the
same recording collapse into one run.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

logger = logging.getLogger("notepin.queue")


@dataclass
class QueuedJob:
    key: int
    attempt: int = 1


_STOP = object()


class JobQueue:
    def __init__(
        self,
        handler: Callable[[int], None],
        tries: int = 3,
        backoff_seconds: float = 30.0,
        workers: int = 2,
        driver: str = "thread",
    ) -> None:
        if driver not in {"thread", "sync"}:
            raise ValueError(f"Unknown queue driver: {driver}")
        self.handler = handler
        self.tries = max(1, int(tries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.workers = max(1, int(workers))
        self.driver = driver

        self._queue: "queue.Queue[object]" = queue.Queue()
        self._threads: List[threading.Thread] = []
        self._timers: Dict[int, threading.Timer] = {}
        self._in_flight: Set[int] = set()
        self._cond = threading.Condition()
        self._stopped = False

    def start(self) -> None:
        if self.driver != "thread" or self._threads:
            return
        self._stopped = False
        for i in range(self.workers):
            t = threading.Thread(target=self._work, name=f"job-worker-{i}", daemon=True)
            t.start()
            self._threads.append(t)

    def dispatch(self, key: int) -> bool:
        """Queue a job for ``key``. Returns False when one is already pending."""
        with self._cond:
            if key in self._in_flight:
                logger.info("Job for recording %s already pending, skipping dispatch", key)
                return False
            self._in_flight.add(key)

        if self.driver == "sync":
            self._run_inline(key)
        else:
            if not self._threads:
                self.start()
            self._queue.put(QueuedJob(key=key))
        return True

    def is_pending(self, key: int) -> bool:
        with self._cond:
            return key in self._in_flight

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until no job is queued, running or waiting for a retry."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._in_flight, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._cond:
            self._stopped = True
            timers = dict(self._timers)
            self._timers.clear()
        for key, timer in timers.items():
            timer.cancel()
            self._release(key)
        for _ in self._threads:
            self._queue.put(_STOP)
        if wait:
            for t in self._threads:
                t.join(timeout=10)
        self._threads = []

    def _run_inline(self, key: int) -> None:
        try:
            for attempt in range(1, self.tries + 1):
                if self._attempt(QueuedJob(key=key, attempt=attempt)):
                    return
                if attempt < self.tries and self.backoff_seconds:
                    time.sleep(self.backoff_seconds)
        finally:
            self._release(key)

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                job: QueuedJob = item  # type: ignore[assignment]
                if self._attempt(job):
                    self._release(job.key)
                elif job.attempt < self.tries and not self._stopped:
                    self._schedule_retry(job)
                else:
                    self._release(job.key)
            finally:
                self._queue.task_done()

    def _attempt(self, job: QueuedJob) -> bool:
        try:
            self.handler(job.key)
            return True
        except Exception:
            if job.attempt < self.tries:
                logger.exception(
                    "Job for recording %s failed (attempt %d/%d), retrying in %.0fs",
                    job.key, job.attempt, self.tries, self.backoff_seconds,
                )
            else:
                logger.exception(
                    "Job for recording %s failed after %d attempts, giving up", job.key, job.attempt
                )
            return False

    def _schedule_retry(self, job: QueuedJob) -> None:
        retry = QueuedJob(key=job.key, attempt=job.attempt + 1)

        def _requeue() -> None:
            with self._cond:
                self._timers.pop(job.key, None)
                if self._stopped:
                    self._in_flight.discard(job.key)
                    self._cond.notify_all()
                    return
                self._queue.put(retry)

        timer = threading.Timer(self.backoff_seconds, _requeue)
        timer.daemon = True
        with self._cond:
            if self._stopped:
                self._in_flight.discard(job.key)
                self._cond.notify_all()
                return
            self._timers[job.key] = timer
            timer.start()

    def _release(self, key: int) -> None:
        with self._cond:
            self._in_flight.discard(key)
            self._cond.notify_all()
