from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Awaitable, Callable

from pydantic import ValidationError

from . import __version__
from .runtime.accounts.store import AccountStoreError
from .runtime.assistant.errors import AssistantError, AuthenticationFailedError
from .runtime.assistant.service import AssistantService
from .runtime.assistant.types import AuthState, StatusUpdate
from .runtime.config import load_config
from .runtime.context.models import SelectedMessageContext
from .runtime.error_codes import ErrorCode
from .runtime.event_bus import BridgeEvent, BridgeEventKind
from .runtime.logging import configure_logging
from .runtime.mcp.settings import ToolSettingsError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_INSTALLED = 2
EXIT_AUTH = 3
EXIT_USAGE = 4

_TRUTHY = {"1", "true", "yes", "on"}


class _FileMessageSource:
    """Serves a selected-message document loaded from a JSON file."""

    def __init__(self, message: SelectedMessageContext | None) -> None:
        self._message = message

    def get_selected_message(self) -> SelectedMessageContext | None:
        return self._message


def _load_email(path: str | None) -> SelectedMessageContext | None:
    if not path:
        return None
    return SelectedMessageContext.model_validate_json(Path(path).read_text(encoding="utf-8"))


def _read_text_arg(value: str) -> str:
    if value == "-":
        return sys.stdin.read()
    return value


def _make_service(args: argparse.Namespace) -> AssistantService:
    config = load_config()
    configure_logging("DEBUG" if getattr(args, "verbose", False) else config.log_level)
    source = _FileMessageSource(_load_email(getattr(args, "email", None)))
    return AssistantService(config, message_source=source)


def _run(coro_factory: Callable[[], Awaitable[int]]) -> int:
    try:
        return asyncio.run(coro_factory())
    except AuthenticationFailedError as e:
        print(f"Login failed: {e}", file=sys.stderr)
        return EXIT_AUTH
    except AssistantError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.code is ErrorCode.NOT_INSTALLED:
            return EXIT_NOT_INSTALLED
        if e.code is ErrorCode.AUTH_REQUIRED:
            print("Run `gemini-bridge login` to sign in.", file=sys.stderr)
            return EXIT_AUTH
        return EXIT_ERROR
    except (AccountStoreError, ToolSettingsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def _cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)

    async def _go() -> int:
        active = await service.load_active_account()
        status = await service.poll_auth_status()
        print(f"installed: {'yes' if service.is_installed() else 'no'}")
        print(f"account: {active or '-'}")
        print(f"auth: {status.state.value}")
        print(f"language: {service.system_language_name()}")
        if status.state is AuthState.NOT_INSTALLED:
            return EXIT_NOT_INSTALLED
        return EXIT_OK if status.authenticated else EXIT_AUTH

    return _run(_go)


def _cmd_login(args: argparse.Namespace) -> int:
    service = _make_service(args)

    def _on_event(event: BridgeEvent) -> None:
        if event.kind is BridgeEventKind.AUTH_URL_DISCOVERED:
            print(f"Opening browser for sign-in: {event.payload.get('url')}")

    service.bus.subscribe(_on_event)

    async def _go() -> int:
        if args.register_tools:
            await service.ensure_tool_settings()
        print("Opening browser for Google sign-in...")
        await service.authenticate()
        print("Signed in.")
        return EXIT_OK

    return _run(_go)


def _cmd_account_show(args: argparse.Namespace) -> int:
    service = _make_service(args)

    async def _go() -> int:
        record = await asyncio.to_thread(service.accounts.read)
        print(f"active: {record.active or '-'}")
        for identity in record.history:
            print(f"previous: {identity}")
        return EXIT_OK

    return _run(_go)


def _cmd_account_switch(args: argparse.Namespace) -> int:
    service = _make_service(args)

    async def _go() -> int:
        await service.load_active_account()
        await service.switch_active_account(args.identity)
        print(f"active: {service.active_account}")
        if not await service.check_authenticated():
            print(f"Sign in to use Gemini with {service.active_account}: gemini-bridge login")
        return EXIT_OK

    try:
        return _run(_go)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE


def _cmd_translate(args: argparse.Namespace) -> int:
    service = _make_service(args)
    text = _read_text_arg(args.text)

    async def _go() -> int:
        if args.to:
            out = await service.translate(text, args.to)
        else:
            out = await service.translate_to_system_language(text)
        print(out.strip())
        return EXIT_OK

    return _run(_go)


def _cmd_summarize(args: argparse.Namespace) -> int:
    service = _make_service(args)
    text = _read_text_arg(args.text)

    async def _go() -> int:
        print((await service.summarize(text)).strip())
        return EXIT_OK

    return _run(_go)


def _cmd_compose(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        context = Path(args.context).read_text(encoding="utf-8") if args.context else None
    except OSError as e:
        print(f"Error: cannot read --context file: {e}", file=sys.stderr)
        return EXIT_USAGE

    async def _go() -> int:
        print((await service.help_compose(args.instruction, context)).strip())
        return EXIT_OK

    return _run(_go)


def _print_status(update: StatusUpdate) -> None:
    if update.msg_type == "tool_use" and update.tool_name:
        print(f"[Using {update.tool_name}...]", file=sys.stderr)
    elif update.msg_type == "tool_result":
        print("[tool finished]", file=sys.stderr)


async def _chat_turn(service: AssistantService, message: str, *, stream: bool) -> None:
    if message.strip().lower() == "/login":
        print("Use `gemini-bridge account switch <identity>` and `gemini-bridge login` to sign in.")
        return
    if stream:
        response = await service.chat_streaming(message, _print_status)
    else:
        response = await service.chat(message)
    print(response.strip())


def _is_tty() -> bool:
    try:
        return bool(sys.stdin.isatty() and sys.stdout.isatty())
    except Exception:
        return False


def _should_use_prompt_toolkit() -> bool:
    if str(os.environ.get("GEMINI_BRIDGE_PLAIN_INPUT") or "").strip().lower() in _TRUTHY:
        return False
    return _is_tty()


async def _interactive_chat(service: AssistantService, *, stream: bool) -> int:
    prompt_session = None
    if _should_use_prompt_toolkit():
        from prompt_toolkit import PromptSession
        from prompt_toolkit.history import InMemoryHistory

        # Typed messages are kept for this session only.
        prompt_session = PromptSession(message="You> ", history=InMemoryHistory())

    print("Type a message, /login for sign-in help, /exit to quit.")
    while True:
        try:
            if prompt_session is not None:
                line = await prompt_session.prompt_async()
            else:
                line = await asyncio.to_thread(input, "You> ")
        except EOFError:
            return EXIT_OK
        message = line.strip()
        if not message:
            continue
        if message.lower() in {"/exit", "/quit"}:
            return EXIT_OK
        # One turn at a time: the next prompt waits for this answer.
        try:
            await _chat_turn(service, message, stream=stream)
        except AssistantError as e:
            print(f"Error: {e}")


def _cmd_chat(args: argparse.Namespace) -> int:
    try:
        service = _make_service(args)
    except (OSError, ValidationError) as e:
        print(f"Error: cannot load --email document: {e}", file=sys.stderr)
        return EXIT_USAGE

    async def _go() -> int:
        await service.load_active_account()
        if args.message:
            await _chat_turn(service, _read_text_arg(args.message), stream=args.stream)
            return EXIT_OK
        return await _interactive_chat(service, stream=args.stream)

    return _run(_go)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gemini-bridge",
        description="Talk to the Gemini CLI assistant from the terminal.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log invocation details to stderr.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    status_parser = subparsers.add_parser("status", help="Show installation, account and sign-in state.")
    status_parser.set_defaults(func=_cmd_status)

    login_parser = subparsers.add_parser("login", help="Sign in with Google (opens a browser).")
    login_parser.add_argument(
        "--register-tools",
        action="store_true",
        help="Write the configured tool server into the assistant settings first.",
    )
    login_parser.set_defaults(func=_cmd_login)

    account_parser = subparsers.add_parser("account", help="Show or switch the active account.")
    account_subparsers = account_parser.add_subparsers(dest="account_command", required=True)
    account_show_parser = account_subparsers.add_parser("show", help="Show the active account and history.")
    account_show_parser.set_defaults(func=_cmd_account_show)
    account_switch_parser = account_subparsers.add_parser("switch", help="Make an account the active one.")
    account_switch_parser.add_argument("identity", help="Account identity, usually an email address.")
    account_switch_parser.set_defaults(func=_cmd_account_switch)

    translate_parser = subparsers.add_parser("translate", help="Translate text.")
    translate_parser.add_argument("text", help="Text to translate, or '-' for stdin.")
    translate_parser.add_argument("--to", default=None, help="Target language (default: system language).")
    translate_parser.set_defaults(func=_cmd_translate)

    summarize_parser = subparsers.add_parser("summarize", help="Summarize an email.")
    summarize_parser.add_argument("text", help="Email text, or '-' for stdin.")
    summarize_parser.set_defaults(func=_cmd_summarize)

    compose_parser = subparsers.add_parser("compose", help="Draft an email body.")
    compose_parser.add_argument("instruction", help="What the email should say.")
    compose_parser.add_argument("--context", default=None, help="File with the email being replied to.")
    compose_parser.set_defaults(func=_cmd_compose)

    chat_parser = subparsers.add_parser("chat", help="Chat with the assistant.")
    chat_parser.add_argument("message", nargs="?", default=None, help="One-shot message ('-' for stdin).")
    chat_parser.add_argument("--stream", action="store_true", help="Use structured streaming and show tool activity.")
    chat_parser.add_argument("--email", default=None, help="JSON file describing the selected email.")
    chat_parser.set_defaults(func=_cmd_chat)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        func = getattr(args, "func")
        return int(func(args))
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130
