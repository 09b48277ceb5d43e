from __future__ import annotations

import json

from gemini_bridge.runtime.assistant.stream_decoder import StreamDecoder, decode_line, summarize_events
from gemini_bridge.runtime.assistant.types import StatusUpdate, StreamEventKind


def _j(**data) -> str:
    return json.dumps(data)


def test_structured_sequence_yields_events_and_text() -> None:
    lines = [
        _j(type="tool_use", tool_name="search", parameters={"q": "x"}),
        _j(type="tool_result", status="success"),
        _j(type="message", role="assistant", content="Hi"),
        _j(type="message", role="assistant", content=" there"),
        _j(type="result"),
    ]
    decoder = StreamDecoder(structured=True)
    emitted = [ev for ev in (decoder.feed(line) for line in lines) if ev is not None]

    assert [ev.kind for ev in emitted] == [
        StreamEventKind.TOOL_USE,
        StreamEventKind.TOOL_RESULT,
        StreamEventKind.MESSAGE,
        StreamEventKind.MESSAGE,
    ]
    assert emitted[0].tool_name == "search"
    assert emitted[0].tool_input == {"q": "x"}
    assert emitted[1].success is True
    assert decoder.text == "Hi there"
    assert decoder.saw_result
    assert summarize_events(decoder.events) == {"tool_use": 1, "tool_result": 1, "message": 2}


def test_status_tuples_for_callers() -> None:
    ev = decode_line(_j(type="tool_use", tool_name="search", parameters={"q": "x"}))
    assert ev is not None
    assert ev.to_status() == StatusUpdate("tool_use", "", "search", {"q": "x"})

    msg = decode_line(_j(type="message", role="assistant", content="Hi"))
    assert msg is not None
    assert tuple(msg.to_status()) == ("message", "Hi", None, None)


def test_noise_and_malformed_lines_are_skipped() -> None:
    decoder = StreamDecoder(structured=True)
    assert decoder.feed("Loaded cached credentials.") is None
    assert decoder.feed("{not json") is None
    assert decoder.feed("[1, 2]") is None
    assert decoder.feed("") is None
    assert decoder.events == []
    assert decoder.text == ""


def test_non_assistant_messages_are_dropped() -> None:
    assert decode_line(_j(type="message", role="user", content="prompt echo")) is None
    assert decode_line(_j(type="message", role="assistant")) is None


def test_tool_use_defaults() -> None:
    ev = decode_line(_j(type="tool_use", input={"a": 1}))
    assert ev is not None
    assert ev.tool_name == "tool"
    assert ev.tool_input == {"a": 1}


def test_failed_tool_result() -> None:
    ev = decode_line(_j(type="tool_result", status="error"))
    assert ev is not None
    assert ev.success is False


def test_unknown_type_is_other() -> None:
    ev = decode_line(_j(type="init", session_id="s1"))
    assert ev is not None
    assert ev.kind is StreamEventKind.OTHER
    assert ev.to_status().msg_type == "init"

    untyped = decode_line(_j(foo=1))
    assert untyped is not None
    assert untyped.to_status().msg_type == "other"


def test_plain_mode_keeps_every_line() -> None:
    decoder = StreamDecoder(structured=False)
    for line in ["Hello", "", "World"]:
        ev = decoder.feed(line)
        assert ev is not None
        assert ev.kind is StreamEventKind.MESSAGE
    assert decoder.text == "Hello\n\nWorld\n"
    assert not decoder.saw_result
