from __future__ import annotations

import threading

import pytest

from notepin.services.job_queue import JobQueue


class FlakyHandler:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls: list[int] = []

    def __call__(self, key: int) -> None:
        self.calls.append(key)
        if len(self.calls) <= self.failures:
            raise RuntimeError("database unavailable")


def test_sync_driver_retries_until_success() -> None:
    handler = FlakyHandler(failures=2)
    queue = JobQueue(handler, tries=3, backoff_seconds=0, driver="sync")

    assert queue.dispatch(5) is True
    assert handler.calls == [5, 5, 5]
    assert not queue.is_pending(5)


def test_sync_driver_gives_up_after_tries(caplog) -> None:
    handler = FlakyHandler(failures=10)
    queue = JobQueue(handler, tries=3, backoff_seconds=0, driver="sync")

    queue.dispatch(5)

    assert handler.calls == [5, 5, 5]
    assert "giving up" in caplog.text
    assert not queue.is_pending(5)


def test_thread_driver_retries_with_backoff() -> None:
    handler = FlakyHandler(failures=1)
    queue = JobQueue(handler, tries=3, backoff_seconds=0.01, workers=1)
    queue.start()
    try:
        queue.dispatch(1)
        assert queue.join(timeout=5)
    finally:
        queue.shutdown()

    assert handler.calls == [1, 1]


def test_duplicate_dispatch_is_coalesced() -> None:
    started = threading.Event()
    release = threading.Event()
    calls: list[int] = []

    def handler(key: int) -> None:
        calls.append(key)
        started.set()
        release.wait(timeout=5)

    queue = JobQueue(handler, tries=1, workers=2)
    queue.start()
    try:
        assert queue.dispatch(3) is True
        assert started.wait(timeout=5)
        assert queue.dispatch(3) is False
        assert queue.dispatch(4) is True
        release.set()
        assert queue.join(timeout=5)
        assert queue.dispatch(3) is True
        assert queue.join(timeout=5)
    finally:
        queue.shutdown()

    assert sorted(calls) == [3, 3, 4]


def test_unknown_driver_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown queue driver"):
        JobQueue(lambda key: None, driver="redis")


def test_shutdown_releases_jobs_waiting_for_retry() -> None:
    failed = threading.Event()

    def handler(key: int) -> None:
        failed.set()
        raise RuntimeError("upstream down")

    queue = JobQueue(handler, tries=3, backoff_seconds=60, workers=1)
    queue.start()
    queue.dispatch(8)
    assert failed.wait(timeout=5)

    queue.shutdown(wait=True)

    assert not queue.is_pending(8)
    assert queue.join(timeout=1)
