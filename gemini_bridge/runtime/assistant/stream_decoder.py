from __future__ import annotations

import json
from typing import Any

from .types import StreamEvent, StreamEventKind


def decode_line(line: str) -> StreamEvent | None:
    """
    Decode one line of `--output-format stream-json` output.

    Returns None for lines that carry no event: banner or warning text, malformed JSON,
    non-assistant messages and the terminal `result` marker (returned as a RESULT event
    so callers can tell it apart from noise).
    """

    s = line.strip()
    if not s.startswith("{"):
        return None
    try:
        data = json.loads(s)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    event_type = data.get("type")

    if event_type == "tool_use":
        name = data.get("tool_name")
        if not isinstance(name, str) or not name:
            name = "tool"
        return StreamEvent.tool_use(name, data.get("parameters", data.get("input")))

    if event_type == "tool_result":
        return StreamEvent.tool_result(data.get("status") == "success")

    if event_type == "message":
        if data.get("role") != "assistant" or "content" not in data:
            return None
        content = data.get("content")
        if not isinstance(content, str):
            content = "" if content is None else str(content)
        return StreamEvent.message(content, role="assistant")

    if event_type == "result":
        return StreamEvent(kind=StreamEventKind.RESULT, raw_type="result")

    return StreamEvent.other(event_type if isinstance(event_type, str) else None)


class StreamDecoder:
    """
    Incremental decoder for one invocation's stdout.

    In structured mode lines are decoded as JSON events and only assistant message
    fragments are accumulated. In plain mode every line is a message and the
    accumulated text keeps one newline per line.
    """

    def __init__(self, *, structured: bool) -> None:
        self.structured = structured
        self.events: list[StreamEvent] = []
        self._parts: list[str] = []
        self.saw_result = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def feed(self, line: str) -> StreamEvent | None:
        """Decode one stdout line; returns the event to surface, if any."""

        if not self.structured:
            ev = StreamEvent.message(line)
            self._parts.append(line + "\n")
            self.events.append(ev)
            return ev

        ev = decode_line(line)
        if ev is None:
            return None
        if ev.kind is StreamEventKind.RESULT:
            self.saw_result = True
            return None
        if ev.kind is StreamEventKind.MESSAGE:
            self._parts.append(ev.content)
        self.events.append(ev)
        return ev


def summarize_events(events: list[StreamEvent]) -> dict[str, Any]:
    counts: dict[str, int] = {}
    for ev in events:
        counts[ev.kind.value] = counts.get(ev.kind.value, 0) + 1
    return counts
