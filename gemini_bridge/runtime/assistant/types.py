from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NamedTuple


class StreamEventKind(StrEnum):
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    MESSAGE = "message"
    RESULT = "result"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class StreamEvent:
    kind: StreamEventKind
    content: str = ""
    role: str | None = None
    tool_name: str | None = None
    tool_input: Any = None
    success: bool | None = None
    raw_type: str | None = None

    @classmethod
    def tool_use(cls, name: str, tool_input: Any = None) -> StreamEvent:
        return cls(kind=StreamEventKind.TOOL_USE, tool_name=name, tool_input=tool_input, raw_type="tool_use")

    @classmethod
    def tool_result(cls, success: bool) -> StreamEvent:
        return cls(kind=StreamEventKind.TOOL_RESULT, success=success, raw_type="tool_result")

    @classmethod
    def message(cls, content: str, role: str = "assistant") -> StreamEvent:
        return cls(kind=StreamEventKind.MESSAGE, content=content, role=role, raw_type="message")

    @classmethod
    def other(cls, raw_type: str | None) -> StreamEvent:
        return cls(kind=StreamEventKind.OTHER, raw_type=raw_type)

    def to_status(self) -> StatusUpdate:
        if self.kind is StreamEventKind.OTHER:
            msg_type = self.raw_type or StreamEventKind.OTHER.value
        else:
            msg_type = self.kind.value
        return StatusUpdate(msg_type=msg_type, content=self.content, tool_name=self.tool_name, tool_input=self.tool_input)


class StatusUpdate(NamedTuple):
    """The (type, content, tool-name, tool-input) tuple handed to streaming callers."""

    msg_type: str
    content: str
    tool_name: str | None
    tool_input: Any


class AuthState(StrEnum):
    NOT_INSTALLED = "not_installed"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AuthStatus:
    state: AuthState
    message: str | None = None
    url: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED


@dataclass(frozen=True, slots=True)
class InvocationResult:
    output_text: str
    events: list[StreamEvent] = field(default_factory=list)
    stdout_text: str = ""
    stderr_text: str = ""
    exit_code: int | None = None
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0
