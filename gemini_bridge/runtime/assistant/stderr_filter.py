from __future__ import annotations

import re

# Diagnostic lines the Node runtime and the CLI print on every run.
_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\(node:\d+\)"),
    re.compile(r"\bThe `?[\w.-]+`? module is deprecated\b"),
    re.compile(r"^Loaded cached credentials\b", re.IGNORECASE),
    re.compile(r"--trace-(deprecation|warnings)\b"),
)


def is_noise_line(line: str) -> bool:
    s = line.strip()
    if not s:
        return True
    return any(p.search(s) for p in _NOISE_PATTERNS)


def filter_non_fatal_warnings(stderr_text: str | None) -> str:
    """
    Drop known-benign diagnostic lines and return what is left.

    Remaining lines are stripped and joined with newlines, in their original order.
    """

    if not stderr_text:
        return ""
    kept = [line.strip() for line in stderr_text.splitlines() if not is_noise_line(line)]
    return "\n".join(kept)
