from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import AsyncIterator, Callable, Mapping

import structlog

from ..accounts.store import AccountStore
from ..config import BridgeConfig, load_config
from ..context.builder import ContextBuilder, MessageSource
from ..context.instructions import COMPOSE_PROMPT, COMPOSE_WITH_CONTEXT_PROMPT, SUMMARIZE_PROMPT, TRANSLATE_PROMPT
from ..context.models import SelectedMessageContext
from ..event_bus import BridgeEventKind, EventBus
from ..mcp.settings import register_tool_server
from .auth import AuthFlow, UrlOpener
from .errors import AssistantNotInstalledError, AuthenticationRequiredError, ProcessFailureError
from .language import system_language_code, system_language_name
from .process import Invocation, ProcessRunner
from .stderr_filter import filter_non_fatal_warnings
from .types import AuthStatus, InvocationResult, StatusUpdate, StreamEvent

logger = structlog.get_logger()

PLAIN_ARGS: tuple[str, ...] = ("-p", "-")
STREAM_JSON_ARGS: tuple[str, ...] = ("--output-format", "stream-json")

StatusCallback = Callable[[StatusUpdate], None]


class AssistantService:
    """
    Public surface of the bridge.

    Every call spawns its own assistant process; concurrent calls are independent and
    nothing here serializes them.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        message_source: MessageSource | None = None,
        bus: EventBus | None = None,
        open_url: UrlOpener | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config if config is not None else load_config(environ)
        self.bus = bus if bus is not None else EventBus()
        self._environ = environ
        self.runner = ProcessRunner(self.config, environ=environ)
        self.context = ContextBuilder(
            message_source=message_source,
            body_char_limit=self.config.body_char_limit,
            attachment_char_limit=self.config.attachment_char_limit,
            environ=environ,
        )
        self.accounts = AccountStore(self.config.account_path, history_limit=self.config.history_limit)
        self.auth = AuthFlow(self.runner, is_installed=self.is_installed, bus=self.bus, open_url=open_url)
        self.active_account: str | None = None

    # Installation / auth

    def is_installed(self) -> bool:
        binary = self.config.assistant_binary
        if os.sep in binary:
            return Path(binary).exists()
        # Bare names resolve through PATH, as the exec call does.
        env = os.environ if self._environ is None else self._environ
        return shutil.which(binary, path=env.get("PATH")) is not None

    def _require_installed(self) -> None:
        if not self.is_installed():
            raise AssistantNotInstalledError(self.config.assistant_binary)

    @property
    def auth_status(self) -> AuthStatus:
        return self.auth.status

    async def check_authenticated(self) -> bool:
        return await self.auth.check_authenticated()

    async def poll_auth_status(self) -> AuthStatus:
        return await self.auth.poll()

    async def authenticate(self) -> AuthStatus:
        return await self.auth.authenticate()

    # Accounts

    async def load_active_account(self) -> str | None:
        self.active_account = await asyncio.to_thread(self.accounts.load)
        return self.active_account

    async def switch_active_account(self, identity: str) -> None:
        record, previous = await asyncio.to_thread(self.accounts.switch, identity)
        self.active_account = record.active
        self.bus.publish(BridgeEventKind.ACTIVE_ACCOUNT_CHANGED, active=record.active, previous=previous)

    async def ensure_tool_settings(self) -> bool:
        """Register the configured tool server in the assistant settings; False when none is configured."""

        server = self.config.tool_server
        if server is None:
            return False
        await asyncio.to_thread(
            register_tool_server,
            self.config.tool_settings_path,
            server,
            environ=self._environ,
        )
        return True

    # Language

    def system_language_code(self) -> str:
        return system_language_code(self._environ)

    def system_language_name(self) -> str:
        return system_language_name(self._environ)

    # Invocation

    def structured_args(self) -> tuple[str, ...]:
        args = list(STREAM_JSON_ARGS)
        if self.config.allowed_tools:
            args.extend(["--allowed-mcp-server-names", *self.config.allowed_tools])
        if self.config.auto_approve_tools:
            args.append("--yolo")
        return tuple(args)

    def _resolve(self, result: InvocationResult) -> str:
        if result.success:
            return result.output_text

        cleaned = filter_non_fatal_warnings(result.stderr_text)
        if not cleaned and result.stdout_text.strip():
            logger.info("assistant_nonzero_exit_tolerated", exit_code=result.exit_code)
            return result.output_text

        if "auth" in cleaned.lower():
            self.bus.publish(BridgeEventKind.AUTHENTICATION_REQUIRED)
            raise AuthenticationRequiredError(stderr=cleaned)

        raise ProcessFailureError(
            f"Gemini CLI error: {cleaned or 'unknown error'}",
            exit_code=result.exit_code,
            stderr=cleaned,
        )

    async def run_prompt(
        self,
        prompt: str,
        *,
        structured: bool = False,
        on_event: Callable[[StreamEvent], None] | None = None,
    ) -> str:
        self._require_installed()
        invocation = Invocation(
            args=(self.structured_args() if structured else PLAIN_ARGS),
            prompt=prompt,
            structured=structured,
        )
        result = await self.runner.run(invocation, on_event=on_event)
        return self._resolve(result)

    # Operations

    async def translate(self, text: str, target_language: str) -> str:
        return await self.run_prompt(TRANSLATE_PROMPT.format(language=target_language, text=text))

    async def translate_to_system_language(self, text: str) -> str:
        return await self.translate(text, self.system_language_name())

    async def summarize(self, text: str) -> str:
        return await self.run_prompt(SUMMARIZE_PROMPT.format(text=text))

    async def help_compose(self, instruction: str, context: str | None = None) -> str:
        if context:
            prompt = COMPOSE_WITH_CONTEXT_PROMPT.format(instruction=instruction, context=context)
        else:
            prompt = COMPOSE_PROMPT.format(instruction=instruction)
        return await self.run_prompt(prompt)

    def build_chat_prompt(self, message: str, *, selected: SelectedMessageContext | None = None) -> str:
        return self.context.build(message, active_account=self.active_account, selected=selected)

    async def chat(self, message: str, *, selected: SelectedMessageContext | None = None) -> str:
        return await self.run_prompt(self.build_chat_prompt(message, selected=selected))

    async def chat_streaming(
        self,
        message: str,
        on_event: StatusCallback | None = None,
        *,
        selected: SelectedMessageContext | None = None,
    ) -> str:
        """
        Chat in structured mode, reporting progress as (type, content, tool_name, tool_input).

        The returned text is the concatenation of the assistant's message fragments.
        """

        def _forward(ev: StreamEvent) -> None:
            if on_event is not None:
                on_event(ev.to_status())

        return await self.run_prompt(
            self.build_chat_prompt(message, selected=selected),
            structured=True,
            on_event=_forward,
        )

    async def chat_events(
        self,
        message: str,
        *,
        selected: SelectedMessageContext | None = None,
    ) -> AsyncIterator[StatusUpdate]:
        """
        Async-iterator form of chat_streaming.

        Yields status updates in arrival order, then a final ("result", text, None, None).
        """

        q: asyncio.Queue[StatusUpdate | None] = asyncio.Queue()

        async def _produce() -> str:
            try:
                return await self.chat_streaming(message, q.put_nowait, selected=selected)
            finally:
                q.put_nowait(None)

        task = asyncio.create_task(_produce())
        try:
            while True:
                item = await q.get()
                if item is None:
                    break
                yield item
            text = await task
        finally:
            if not task.done():
                task.cancel()
        yield StatusUpdate(msg_type="result", content=text, tool_name=None, tool_input=None)
