from __future__ import annotations

import json
import logging

import pytest

from notepin.services.errors import OutputValidationError, UpstreamError
from notepin.services.output_validator import (
    display_action_items,
    parse_structured_output,
    strip_code_fences,
    validate_structured_output,
)

from conftest import structured_payload


def test_valid_payload_passes() -> None:
    validate_structured_output(structured_payload())


def test_missing_title_is_rejected() -> None:
    data = structured_payload()
    del data["title"]

    with pytest.raises(OutputValidationError, match="title"):
        validate_structured_output(data)


def test_non_list_action_items_rejected() -> None:
    with pytest.raises(OutputValidationError, match="action_items"):
        validate_structured_output(structured_payload(action_items={"task": "x"}))


def test_missing_confidence_names_the_item_index() -> None:
    items = [
        {"task": "First", "confidence": "low"},
        {"task": "Second", "due_date": None},
    ]

    with pytest.raises(OutputValidationError, match="Action item 1 has invalid confidence"):
        validate_structured_output(structured_payload(action_items=items))


def test_item_must_be_object() -> None:
    with pytest.raises(OutputValidationError, match="Action item 0 is not an object"):
        validate_structured_output(structured_payload(action_items=["Update docs"]))


@pytest.mark.parametrize("due_date", ["02/01/2025", "2025-1-2", "tomorrow", 20250102])
def test_bad_due_date_rejected(due_date) -> None:
    items = [{"task": "Update docs", "due_date": due_date, "confidence": "medium"}]

    with pytest.raises(OutputValidationError, match="due_date"):
        validate_structured_output(structured_payload(action_items=items))


def test_null_or_absent_due_date_accepted() -> None:
    items = [
        {"task": "A", "due_date": None, "confidence": "low"},
        {"task": "B", "confidence": "medium"},
    ]
    validate_structured_output(structured_payload(action_items=items))


@pytest.mark.parametrize(
    "meta, field",
    [
        ({"language": "fr", "source": "text"}, "meta.language"),
        ({"language": "ar", "source": "video"}, "meta.source"),
        ({"source": "audio"}, "meta.language"),
    ],
)
def test_meta_values_checked(meta, field) -> None:
    with pytest.raises(OutputValidationError, match=field):
        validate_structured_output(structured_payload(meta=meta))


def test_meta_must_be_object() -> None:
    with pytest.raises(OutputValidationError, match="meta field"):
        validate_structured_output(structured_payload(meta="en"))


def test_long_summary_only_warns(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="notepin.output_validator"):
        validate_structured_output(structured_payload(summary="x" * 1500))

    assert "exceeds recommended length" in caplog.text


def test_strip_code_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_fenced_json() -> None:
    text = "```json\n" + json.dumps(structured_payload()) + "\n```"

    assert parse_structured_output(text)["title"] == "Ship on Friday"


def test_parse_rejects_malformed_json() -> None:
    with pytest.raises(UpstreamError, match="Invalid JSON"):
        parse_structured_output('{"title": "unterminated"')


def test_parse_rejects_non_object() -> None:
    with pytest.raises(UpstreamError, match="not a valid object"):
        parse_structured_output('["a", "b"]')


def test_display_items_are_bounded_and_ordered() -> None:
    items = [{"task": f"Task {i}", "confidence": "low"} for i in range(12)]

    assert display_action_items(items) == [f"Task {i}" for i in range(8)]
    assert display_action_items(items[:3]) == ["Task 0", "Task 1", "Task 2"]
