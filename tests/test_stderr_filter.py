from __future__ import annotations

import pytest

from gemini_bridge.runtime.assistant.stderr_filter import filter_non_fatal_warnings, is_noise_line


@pytest.mark.parametrize(
    "line",
    [
        "(node:12345) [DEP0040] DeprecationWarning: something",
        "The punycode module is deprecated.",
        "The `punycode` module is deprecated. Please use a userland alternative instead.",
        "Loaded cached credentials",
        "Loaded cached credentials.",
        "(Use `node --trace-deprecation ...` to show where the warning was created)",
        "(Use `node --trace-warnings ...` to show where the warning was created)",
        "",
        "   ",
    ],
)
def test_noise_lines_are_recognized(line: str) -> None:
    assert is_noise_line(line)


@pytest.mark.parametrize(
    "line",
    [
        "Error: quota exceeded",
        "Please run auth login",
        "node is not happy",
    ],
)
def test_real_lines_are_kept(line: str) -> None:
    assert not is_noise_line(line)


def test_noise_only_text_cleans_to_empty() -> None:
    text = (
        "(node:12345) [DEP0040] DeprecationWarning: The `punycode` module is deprecated.\n"
        "(Use `node --trace-deprecation ...` to show where the warning was created)\n"
        "Loaded cached credentials.\n"
    )
    assert filter_non_fatal_warnings(text) == ""


def test_mixed_text_keeps_real_lines_in_order() -> None:
    text = (
        "(node:1) Warning: noisy\n"
        "  Error: first  \n"
        "Loaded cached credentials.\n"
        "second\n"
    )
    assert filter_non_fatal_warnings(text) == "Error: first\nsecond"


@pytest.mark.parametrize("text", [None, "", "\n\n"])
def test_empty_input_cleans_to_empty(text: str | None) -> None:
    assert filter_non_fatal_warnings(text) == ""
