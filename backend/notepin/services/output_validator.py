"""Parsing and validation of structured AI output.

The model is asked for strict JSON, but responses occasionally arrive
wrapped in a markdown code fence. ``parse_structured_output`` strips that
and decodes; ``validate_structured_output`` then rejects anything that does
not match the schema so malformed data never reaches storage.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List

from notepin.services.errors import OutputValidationError, UpstreamError

logger = logging.getLogger("notepin.output_validator")

LANGUAGES = ("ar", "en")
SOURCES = ("audio", "text")
CONFIDENCE_LEVELS = ("low", "medium", "high")
MAX_DISPLAY_ACTION_ITEMS = 8
SUMMARY_SOFT_LIMIT = 1000

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    content = (text or "").strip()
    if content.startswith("```"):
        content = _FENCE_OPEN_RE.sub("", content, count=1)
        content = _FENCE_CLOSE_RE.sub("", content, count=1)
    return content


def parse_structured_output(text: str) -> Dict[str, Any]:
    content = strip_code_fences(text)
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise UpstreamError(f"Invalid JSON from AI: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise UpstreamError("AI response is not a valid object")
    return parsed


def validate_structured_output(data: Dict[str, Any]) -> None:
    if not isinstance(data.get("title"), str):
        raise OutputValidationError("Missing or invalid title field")
    if not isinstance(data.get("summary"), str):
        raise OutputValidationError("Missing or invalid summary field")
    if not isinstance(data.get("action_items"), list):
        raise OutputValidationError("Missing or invalid action_items field")
    if not isinstance(data.get("meta"), dict):
        raise OutputValidationError("Missing or invalid meta field")

    meta = data["meta"]
    if meta.get("language") not in LANGUAGES:
        raise OutputValidationError("Invalid meta.language field")
    if meta.get("source") not in SOURCES:
        raise OutputValidationError("Invalid meta.source field")

    for index, item in enumerate(data["action_items"]):
        if not isinstance(item, dict):
            raise OutputValidationError(f"Action item {index} is not an object")
        if not isinstance(item.get("task"), str):
            raise OutputValidationError(f"Action item {index} missing task field")
        if item.get("confidence") not in CONFIDENCE_LEVELS:
            raise OutputValidationError(f"Action item {index} has invalid confidence field")
        due_date = item.get("due_date")
        if due_date is not None and not (isinstance(due_date, str) and _DATE_RE.match(due_date)):
            raise OutputValidationError(f"Action item {index} has invalid due_date format")

    if len(data["summary"]) > SUMMARY_SOFT_LIMIT:
        logger.warning("Summary exceeds recommended length (%d chars)", len(data["summary"]))


def display_action_items(items: Iterable[Dict[str, Any]], limit: int = MAX_DISPLAY_ACTION_ITEMS) -> List[str]:
    return [item["task"] for item in items][:limit]
