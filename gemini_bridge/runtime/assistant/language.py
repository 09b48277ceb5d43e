from __future__ import annotations

import os
from typing import Mapping

_LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "nl": "Dutch",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
    "hi": "Hindi",
    "pl": "Polish",
    "tr": "Turkish",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "cs": "Czech",
    "el": "Greek",
    "he": "Hebrew",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "uk": "Ukrainian",
}

_LOCALE_VARS = ("LC_ALL", "LC_MESSAGES", "LANG")


def system_language_code(environ: Mapping[str, str] | None = None) -> str:
    """Two-letter language code from the locale environment, e.g. "en_US.UTF-8" -> "en"."""

    env = os.environ if environ is None else environ
    for var in _LOCALE_VARS:
        value = (env.get(var) or "").strip()
        if not value:
            continue
        if value in {"C", "POSIX"} or value.startswith("C."):
            return "en"
        code = value[:2].lower()
        if len(code) == 2 and code.isalpha():
            return code
        return "en"
    return "en"


def language_name(code: str) -> str:
    return _LANGUAGE_NAMES.get(code.lower(), code.upper())


def system_language_name(environ: Mapping[str, str] | None = None) -> str:
    return language_name(system_language_code(environ))
