"""Status transitions of a recording."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from notepin.models.recording import Recording, RecordingStatus


class GateDecision(str, Enum):
    MISSING = "missing"
    ALREADY_READY = "already_ready"
    INVALID_STATE = "invalid_state"
    START = "start"  # uploaded/failed, must move to processing first
    RESUME = "resume"  # already processing

    @property
    def should_run(self) -> bool:
        return self in (GateDecision.START, GateDecision.RESUME)


class RetryDecision(str, Enum):
    ALLOWED = "allowed"
    IN_PROGRESS = "in_progress"
    ALREADY_PROCESSED = "already_processed"
    NOT_ALLOWED = "not_allowed"


def parse_status(value: str) -> Optional[RecordingStatus]:
    try:
        return RecordingStatus(value)
    except ValueError:
        return None


def decide(recording: Optional[Recording]) -> GateDecision:
    """Decide whether the processing job may work on ``recording``."""
    if recording is None:
        return GateDecision.MISSING
    status = parse_status(recording.status)
    if status is RecordingStatus.READY:
        return GateDecision.ALREADY_READY
    if status is RecordingStatus.PROCESSING:
        return GateDecision.RESUME
    if status in (RecordingStatus.UPLOADED, RecordingStatus.FAILED):
        return GateDecision.START
    return GateDecision.INVALID_STATE


def can_retry(status: str) -> RetryDecision:
    """Manual retry is only accepted from uploaded or failed."""
    parsed = parse_status(status)
    if parsed is RecordingStatus.READY:
        return RetryDecision.ALREADY_PROCESSED
    if parsed is RecordingStatus.PROCESSING:
        return RetryDecision.IN_PROGRESS
    if parsed in (RecordingStatus.UPLOADED, RecordingStatus.FAILED):
        return RetryDecision.ALLOWED
    return RetryDecision.NOT_ALLOWED
