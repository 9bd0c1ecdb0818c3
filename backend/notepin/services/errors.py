"""Failures of a single processing run.

Everything here is caught at the job boundary and recorded as a failed
recording; none of it reaches the HTTP layer.
"""

from __future__ import annotations


class ProcessingError(RuntimeError):
    """Base class for per-run processing failures."""


class NoTranscriptError(ProcessingError):
    """The recording has neither transcript text nor audio."""


class UpstreamError(ProcessingError):
    """The AI provider failed, timed out or returned unusable content."""


class OutputValidationError(ProcessingError, ValueError):
    """Structured AI output does not match the expected schema."""
