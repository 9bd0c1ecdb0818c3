from __future__ import annotations

import pytest

from notepin.models.recording import Recording
from notepin.services.state import GateDecision, RetryDecision, can_retry, decide


@pytest.mark.parametrize(
    "status, expected",
    [
        ("uploaded", GateDecision.START),
        ("failed", GateDecision.START),
        ("processing", GateDecision.RESUME),
        ("ready", GateDecision.ALREADY_READY),
        ("archived", GateDecision.INVALID_STATE),
        ("", GateDecision.INVALID_STATE),
    ],
)
def test_gate_decision(status: str, expected: GateDecision) -> None:
    assert decide(Recording(status=status)) is expected


def test_missing_recording() -> None:
    assert decide(None) is GateDecision.MISSING
    assert not GateDecision.MISSING.should_run


def test_only_start_and_resume_run() -> None:
    runnable = {d for d in GateDecision if d.should_run}

    assert runnable == {GateDecision.START, GateDecision.RESUME}


@pytest.mark.parametrize(
    "status, expected",
    [
        ("uploaded", RetryDecision.ALLOWED),
        ("failed", RetryDecision.ALLOWED),
        ("processing", RetryDecision.IN_PROGRESS),
        ("ready", RetryDecision.ALREADY_PROCESSED),
        ("deleted", RetryDecision.NOT_ALLOWED),
    ],
)
def test_manual_retry(status: str, expected: RetryDecision) -> None:
    assert can_retry(status) is expected
