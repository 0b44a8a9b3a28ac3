from __future__ import annotations

import re
from typing import Any

_LETTER_RE = re.compile(r"[a-zA-Z]")


def is_valid_text(text: Any) -> bool:
    """
    True when ``text`` is worth sending to the similarity service.

    Rejects non-strings, anything shorter than 3 characters once trimmed,
    strings without a single letter, and URL-like strings starting with "http".
    """
    if not text or not isinstance(text, str):
        return False
    trimmed = text.strip()
    if len(trimmed) < 3:
        return False
    if not _LETTER_RE.search(trimmed):
        return False
    if trimmed.startswith("http"):
        return False
    return True
