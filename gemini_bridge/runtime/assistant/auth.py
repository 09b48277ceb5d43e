from __future__ import annotations

import asyncio
import webbrowser
from typing import Callable

import structlog

from ..event_bus import BridgeEventKind, EventBus
from .errors import AssistantError, AssistantNotInstalledError, AuthenticationFailedError
from .process import Invocation, ProcessRunner
from .stderr_filter import filter_non_fatal_warnings
from .text import extract_first_url
from .types import AuthState, AuthStatus

logger = structlog.get_logger()

STATUS_ARGS: tuple[str, ...] = ("auth", "status")
LOGIN_ARGS: tuple[str, ...] = ("auth", "login")

UrlOpener = Callable[[str], object]


class AuthFlow:
    """
    Sign-in state machine around `auth status` / `auth login`.

    Nothing is persisted: `check_authenticated()` is a fresh poll every time, and
    `state` only reflects the most recent check or login attempt in this process.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        is_installed: Callable[[], bool],
        bus: EventBus,
        open_url: UrlOpener | None = None,
    ) -> None:
        self._runner = runner
        self._is_installed = is_installed
        self._bus = bus
        self._open_url = open_url if open_url is not None else webbrowser.open
        self._status = AuthStatus(state=AuthState.UNAUTHENTICATED)
        self._browser_launches: set[asyncio.Future[None]] = set()

    @property
    def status(self) -> AuthStatus:
        return self._status

    async def check_authenticated(self) -> bool:
        if not self._is_installed():
            return False
        try:
            result = await self._runner.run(Invocation(args=STATUS_ARGS))
        except AssistantError as e:
            logger.info("auth_status_unavailable", error=str(e))
            return False
        return result.success

    async def poll(self) -> AuthStatus:
        if not self._is_installed():
            self._status = AuthStatus(state=AuthState.NOT_INSTALLED, message="Gemini CLI is not installed.")
        elif await self.check_authenticated():
            self._status = AuthStatus(state=AuthState.AUTHENTICATED)
        else:
            self._status = AuthStatus(state=AuthState.UNAUTHENTICATED)
        return self._status

    async def authenticate(self) -> AuthStatus:
        """
        Run `auth login`, opening the first sign-in URL as soon as it is printed.

        Raises AuthenticationFailedError when the assistant is still not authenticated
        once the login process exits. Its message prefers the sign-in URL, then the
        cleaned diagnostic text, then a generic failure string.
        """

        if not self._is_installed():
            self._status = AuthStatus(state=AuthState.NOT_INSTALLED, message="Gemini CLI is not installed.")
            raise AssistantNotInstalledError(self._runner.assistant_binary)

        self._status = AuthStatus(state=AuthState.AUTHENTICATING)
        found: dict[str, str] = {}

        def _scan(line: str) -> None:
            if "url" in found:
                return
            url = extract_first_url(line)
            if url is None:
                return
            found["url"] = url
            self._status = AuthStatus(state=AuthState.AUTHENTICATING, url=url)
            logger.info("auth_url_discovered")
            self._bus.publish(BridgeEventKind.AUTH_URL_DISCOVERED, url=url)
            # Some browser backends wait for the browser to exit.
            launch = asyncio.get_running_loop().run_in_executor(None, self._launch_browser, url)
            self._browser_launches.add(launch)
            launch.add_done_callback(self._browser_launches.discard)

        try:
            result = await self._runner.run(
                Invocation(args=LOGIN_ARGS),
                on_stdout_line=_scan,
                on_stderr_line=_scan,
            )
        except AssistantError as e:
            self._fail(str(e), url=found.get("url"))
            raise

        url = found.get("url")
        if result.success or await self.check_authenticated():
            self._status = AuthStatus(state=AuthState.AUTHENTICATED)
            logger.info("auth_completed", exit_code=result.exit_code)
            self._bus.publish(BridgeEventKind.AUTHENTICATION_COMPLETED, success=True, error_message=None)
            return self._status

        if url:
            message = f"Sign-in was not completed. Open this URL to sign in: {url}"
        else:
            message = filter_non_fatal_warnings(result.stderr_text) or "Authentication failed"
        self._fail(message, url=url)
        raise AuthenticationFailedError(message, url=url, exit_code=result.exit_code)

    def _launch_browser(self, url: str) -> None:
        try:
            self._open_url(url)
        except Exception as e:
            logger.warning("auth_browser_launch_failed", error=str(e))

    def _fail(self, message: str, *, url: str | None) -> None:
        self._status = AuthStatus(state=AuthState.FAILED, message=message, url=url)
        logger.warning("auth_failed", has_url=url is not None)
        self._bus.publish(BridgeEventKind.AUTHENTICATION_COMPLETED, success=False, error_message=message)
