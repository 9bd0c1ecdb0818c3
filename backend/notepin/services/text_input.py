from __future__ import annotations

import re
from typing import Union

MIN_TEXT_LENGTH = 10
MAX_TEXT_LENGTH = 20000

_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def normalize_text(content: Union[str, bytes]) -> str:
    """Decode to text, unify line endings and trim excess whitespace."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError:
            content = content.decode("latin-1")
    content = content.lstrip("\ufeff")
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    content = _TRAILING_WS_RE.sub("", content)
    content = _BLANK_LINES_RE.sub("\n\n", content)
    return content.strip()
