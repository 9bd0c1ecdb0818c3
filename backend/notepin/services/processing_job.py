"""AI processing of a single recording.

A run takes a recording from raw input (audio or text) to structured AI
output, or marks it failed. Runs are safe to repeat: a ready recording is
left alone, and a transcript is saved as soon as it exists so a retry never
transcribes the same audio twice.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from sqlmodel import Session

from notepin.config import Settings
from notepin.models.base import utc_now
from notepin.models.recording import Recording, RecordingStatus
from notepin.repositories.recordings import RecordingsRepository
from notepin.services.ai_client import AIProvider
from notepin.services.errors import NoTranscriptError
from notepin.services.event_tracker import EventTracker
from notepin.services.output_validator import (
    display_action_items,
    parse_structured_output,
    validate_structured_output,
)
from notepin.services.prompts import SYSTEM_PROMPT, build_user_prompt
from notepin.services.state import GateDecision, decide

logger = logging.getLogger("notepin.processing")

GENERIC_ERROR_MESSAGE = "Processing failed. Please try again."


class RecordingProcessor:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        provider: AIProvider,
        tracker: EventTracker,
        settings: Optional[Settings] = None,
    ) -> None:
        self.session_factory = session_factory
        self.provider = provider
        self.tracker = tracker
        self.settings = settings or Settings()

    def __call__(self, recording_id: int) -> None:
        self.process(recording_id)

    def process(self, recording_id: int) -> None:
        with self.session_factory() as session:
            repo = RecordingsRepository(session)
            recording = repo.get(recording_id)

            decision = decide(recording)
            if not decision.should_run:
                self._log_skip(recording_id, recording, decision)
                return

            if decision is GateDecision.START:
                recording.status = RecordingStatus.PROCESSING.value
                recording = repo.update(recording)

            try:
                input_type, language, items_count = self._run(repo, recording)
            except Exception as e:
                self._mark_failed(session, repo, recording_id, e)
                return

        logger.info(
            "Recording %s processed (input_type=%s, language=%s)", recording_id, input_type, language
        )
        self.tracker.track(
            "ai_ready",
            recording_id=recording_id,
            user_id=recording.user_id,
            metadata={
                "input_type": input_type,
                "language": language,
                "action_items_count": items_count,
            },
        )

    def _log_skip(self, recording_id: int, recording: Optional[Recording], decision: GateDecision) -> None:
        if decision is GateDecision.MISSING:
            logger.warning("Recording %s not found, skipping", recording_id)
        elif decision is GateDecision.ALREADY_READY:
            logger.info("Recording %s already processed, skipping", recording_id)
        else:
            logger.warning(
                "Recording %s has status %r, not processable",
                recording_id,
                recording.status if recording is not None else None,
            )

    def _run(self, repo: RecordingsRepository, recording: Recording) -> Tuple[str, str, int]:
        input_type = "audio" if recording.audio_path else "text"
        transcript = recording.transcript

        if not transcript and recording.audio_path:
            transcript = self.provider.transcribe(self._audio_file(recording.audio_path))
            recording.transcript = transcript
            recording = repo.update(recording)

        if not transcript:
            raise NoTranscriptError("No transcript or audio available for processing")

        content = self.provider.complete_json(SYSTEM_PROMPT, build_user_prompt(transcript, input_type))
        structured = parse_structured_output(content)
        validate_structured_output(structured)

        meta: Dict[str, Any] = structured["meta"]
        recording.ai_title = structured["title"]
        recording.ai_summary = structured["summary"]
        recording.ai_action_items = display_action_items(structured["action_items"])
        recording.ai_meta = {
            "language": meta["language"],
            "source": meta["source"],
            "decision_context": meta.get("decision_context"),
            "action_items_full": structured["action_items"],
            "input_type": input_type,
            "transcription_model": self.provider.transcription_model if input_type == "audio" else None,
            "chat_model": self.provider.chat_model,
            "processed_at": utc_now().isoformat(),
        }
        recording.status = RecordingStatus.READY.value
        repo.update(recording)
        return input_type, meta["language"], len(structured["action_items"])

    def _audio_file(self, audio_path: str) -> Path:
        return Path(self.settings.audio_dir) / audio_path

    def _mark_failed(
        self, session: Session, repo: RecordingsRepository, recording_id: int, error: Exception
    ) -> None:
        logger.error("Processing recording %s failed: %s", recording_id, error)

        # Drop whatever the failed run assigned but never saved
        session.rollback()
        recording = repo.get(recording_id)
        if recording is None:
            return
        session.refresh(recording)

        recording.status = RecordingStatus.FAILED.value
        recording.ai_meta = {
            "error": GENERIC_ERROR_MESSAGE,
            "error_details": None if self.settings.is_production else str(error),
            "failed_at": utc_now().isoformat(),
        }
        # A failure here propagates to the queue, which retries the job
        repo.update(recording)

        self.tracker.track("ai_failed", recording_id=recording_id, user_id=recording.user_id)
