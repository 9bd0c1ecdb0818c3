"""Remote AI provider: audio transcription and JSON chat completion."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from openai import OpenAI, OpenAIError, APITimeoutError

from notepin.config import Settings
from notepin.services.errors import UpstreamError

logger = logging.getLogger("notepin.ai_client")


class AIProvider(Protocol):
    transcription_model: str
    chat_model: str

    def transcribe(self, audio_path: Path) -> str: ...

    def complete_json(self, system_prompt: str, user_prompt: str) -> str: ...


class OpenAIProvider:
    """OpenAI-backed provider.

    Every outbound call is bounded by ``ai_timeout_seconds``; a timeout is
    reported like any other upstream failure so the run ends as failed and
    stays eligible for a retry.
    """

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None) -> None:
        self.settings = settings
        self.transcription_model = settings.transcription_model
        self.chat_model = settings.chat_model
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise UpstreamError("OpenAI API key is not configured")
            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url or None,
                timeout=self.settings.ai_timeout_seconds,
                max_retries=self.settings.ai_max_retries,
            )
        return self._client

    def transcribe(self, audio_path: Path) -> str:
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise UpstreamError(f"Audio file not found: {audio_path.name}")

        logger.info(
            "Transcribing %s (%.1f MB) with %s",
            audio_path.name,
            audio_path.stat().st_size / (1024 * 1024),
            self.transcription_model,
        )
        client = self._get_client()
        try:
            with open(audio_path, "rb") as audio_file:
                response = client.audio.transcriptions.create(
                    model=self.transcription_model,
                    file=audio_file,
                )
        except APITimeoutError as e:
            raise UpstreamError(f"Transcription timed out after {self.settings.ai_timeout_seconds}s") from e
        except OpenAIError as e:
            raise UpstreamError(f"Transcription failed: {e}") from e

        text = response if isinstance(response, str) else getattr(response, "text", "")
        text = (text or "").strip()
        if not text:
            raise UpstreamError("Transcription returned no text")
        return text

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.chat_temperature,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as e:
            raise UpstreamError(f"Extraction timed out after {self.settings.ai_timeout_seconds}s") from e
        except OpenAIError as e:
            raise UpstreamError(f"Extraction failed: {e}") from e

        if not response.choices:
            return "{}"
        content = response.choices[0].message.content
        return content if content is not None else "{}"
