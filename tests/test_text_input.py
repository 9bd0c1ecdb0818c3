from __future__ import annotations

from notepin.services.text_input import normalize_text


def test_line_endings_and_whitespace() -> None:
    raw = "First line   \r\nSecond\tline\t\r\n\r\n\r\n\r\nThird\r"

    assert normalize_text(raw) == "First line\nSecond\tline\n\nThird"


def test_bytes_are_decoded() -> None:
    assert normalize_text("قررنا الإطلاق يوم الجمعة\n".encode("utf-8")) == "قررنا الإطلاق يوم الجمعة"


def test_invalid_utf8_falls_back() -> None:
    assert normalize_text(b"caf\xe9 meeting notes") == "café meeting notes"


def test_bom_removed() -> None:
    assert normalize_text("\ufeffHello there".encode("utf-8")) == "Hello there"
