from __future__ import annotations

import asyncio
import contextlib
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Mapping

import structlog

from ..config import BridgeConfig
from ..error_codes import ErrorCode
from .errors import AssistantError
from .stream_decoder import StreamDecoder, summarize_events
from .types import InvocationResult, StreamEvent

logger = structlog.get_logger()

# Per-line buffer limit for the child's pipes; stream-json lines can be large.
_LINE_LIMIT = 16 * 1024 * 1024

LineCallback = Callable[[str], None]
EventCallback = Callable[[StreamEvent], None]
StartedCallback = Callable[[asyncio.subprocess.Process], None]


def _new_invocation_id() -> str:
    return f"inv_{time.time_ns():016x}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True, slots=True)
class Invocation:
    """
    One run of the assistant executable.

    `args` are the flags after the executable path. The prompt, when present, is
    written to stdin and never appears in `args`.
    """

    args: tuple[str, ...]
    prompt: str | None = None
    structured: bool = False
    invocation_id: str = field(default_factory=_new_invocation_id)


async def _iter_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    while True:
        raw = await stream.readline()
        if not raw:
            return
        yield raw.decode("utf-8", errors="replace").rstrip("\r\n")


class ProcessRunner:
    def __init__(self, config: BridgeConfig, *, environ: Mapping[str, str] | None = None) -> None:
        self._config = config
        self._environ = environ

    @property
    def assistant_binary(self) -> str:
        return self._config.assistant_binary

    def build_argv(self, args: tuple[str, ...] | list[str]) -> list[str]:
        return [*self._config.command_prefix(), *args]

    def child_env(self) -> dict[str, str]:
        env = dict(os.environ if self._environ is None else self._environ)
        env.update(self._config.quiet_child_env)
        return env

    async def run(
        self,
        invocation: Invocation,
        *,
        on_event: EventCallback | None = None,
        on_stdout_line: LineCallback | None = None,
        on_stderr_line: LineCallback | None = None,
        on_started: StartedCallback | None = None,
    ) -> InvocationResult:
        """
        Spawn the assistant, deliver the prompt on stdin and drain both pipes.

        Callbacks fire as soon as each line is read, in pipe order. The call returns
        once the process has exited and both pipes reached EOF. If the awaiting task is
        cancelled or a callback raises, the child is killed before the error propagates.
        """

        argv = self.build_argv(invocation.args)
        log = logger.bind(invocation_id=invocation.invocation_id)
        log.info(
            "assistant_invocation_started",
            args=list(invocation.args),
            structured=invocation.structured,
            prompt_chars=(len(invocation.prompt) if invocation.prompt is not None else None),
        )

        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=(asyncio.subprocess.PIPE if invocation.prompt is not None else asyncio.subprocess.DEVNULL),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.child_env(),
                limit=_LINE_LIMIT,
            )
        except OSError as e:
            log.warning("assistant_spawn_failed", error=str(e))
            raise AssistantError(
                f"Failed to start Gemini CLI: {e}",
                code=ErrorCode.SPAWN_FAILED,
                details={"argv0": argv[0]},
                cause=e,
            ) from e

        decoder = StreamDecoder(structured=invocation.structured)
        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        async def _feed_stdin() -> None:
            if invocation.prompt is None or proc.stdin is None:
                return
            try:
                proc.stdin.write(invocation.prompt.encode("utf-8"))
                await proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                # Child exited without reading its input; the exit status reports why.
                pass
            finally:
                proc.stdin.close()
                with contextlib.suppress(BrokenPipeError, ConnectionResetError):
                    await proc.stdin.wait_closed()

        async def _drain_stdout() -> None:
            assert proc.stdout is not None
            async for line in _iter_lines(proc.stdout):
                stdout_lines.append(line)
                if on_stdout_line is not None:
                    on_stdout_line(line)
                ev = decoder.feed(line)
                if ev is not None and on_event is not None:
                    on_event(ev)

        async def _drain_stderr() -> None:
            assert proc.stderr is not None
            async for line in _iter_lines(proc.stderr):
                stderr_lines.append(line)
                if on_stderr_line is not None:
                    on_stderr_line(line)

        try:
            if on_started is not None:
                on_started(proc)
            await asyncio.gather(_feed_stdin(), _drain_stdout(), _drain_stderr())
            exit_code = await proc.wait()
        except BaseException:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                with contextlib.suppress(Exception):
                    await proc.wait()
            log.warning("assistant_invocation_aborted")
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        result = InvocationResult(
            output_text=decoder.text,
            events=list(decoder.events),
            stdout_text="".join(f"{line}\n" for line in stdout_lines),
            stderr_text="".join(f"{line}\n" for line in stderr_lines),
            exit_code=exit_code,
            duration_ms=duration_ms,
        )
        if invocation.structured and not decoder.saw_result:
            log.warning("assistant_stream_incomplete", exit_code=exit_code)
        log.info(
            "assistant_invocation_finished",
            exit_code=exit_code,
            duration_ms=duration_ms,
            stdout_lines=len(stdout_lines),
            stderr_lines=len(stderr_lines),
            events=summarize_events(result.events),
        )
        return result
