from __future__ import annotations

import re

TRUNCATION_MARKER = "\n[truncated]"

_URL_RE = re.compile(r"https?://[^\s<>\"'`]+")
_TRAILING_PUNCT = ".,)]!?:;"


def extract_first_url(text: str | None) -> str | None:
    if not text:
        return None
    m = _URL_RE.search(text)
    if m is None:
        return None
    url = m.group(0).rstrip(_TRAILING_PUNCT)
    # A bare scheme is not a URL.
    if url.endswith("://"):
        return None
    return url


def truncate_for_prompt(text: str, limit: int) -> str:
    if limit < 0:
        raise ValueError("limit must be >= 0")
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER
