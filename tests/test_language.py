from __future__ import annotations

import pytest

from gemini_bridge.runtime.assistant.language import language_name, system_language_code, system_language_name


@pytest.mark.parametrize(
    ("environ", "expected"),
    [
        ({"LANG": "de_DE.UTF-8"}, "de"),
        ({"LANG": "nl_NL"}, "nl"),
        ({"LANG": "C"}, "en"),
        ({"LANG": "C.UTF-8"}, "en"),
        ({"LANG": "POSIX"}, "en"),
        ({}, "en"),
        ({"LANG": "fr_FR.UTF-8", "LC_ALL": "ja_JP.UTF-8"}, "ja"),
        ({"LANG": "fr_FR.UTF-8", "LC_MESSAGES": "es_ES"}, "es"),
        ({"LANG": "", "LC_ALL": ""}, "en"),
    ],
)
def test_system_language_code(environ: dict[str, str], expected: str) -> None:
    assert system_language_code(environ) == expected


def test_language_name_known_and_fallback() -> None:
    assert language_name("de") == "German"
    assert language_name("EN") == "English"
    assert language_name("xx") == "XX"


def test_system_language_name() -> None:
    assert system_language_name({"LANG": "pt_BR.UTF-8"}) == "Portuguese"
