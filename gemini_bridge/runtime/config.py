from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

DEFAULT_RUNTIME_BINARY = "/usr/share/geary-gemini/node/bin/node"
DEFAULT_ASSISTANT_BINARY = "/usr/share/geary-gemini/node_modules/.bin/gemini"
DEFAULT_TOOL_SERVICE_NAME = "geary-email"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class ToolServerConfig:
    """
    Auxiliary tool-access server registered in the assistant's settings document.

    `forward_env` names variables copied from the host environment into the
    server entry, so the server can reach the session that launched it.
    """

    command: str
    args: tuple[str, ...] = ()
    service_name: str = DEFAULT_TOOL_SERVICE_NAME
    forward_env: tuple[str, ...] = ("DBUS_SESSION_BUS_ADDRESS",)


@dataclass(frozen=True, slots=True)
class BridgeConfig:
    # Empty runtime means the assistant binary is executed directly.
    runtime_binary: str | None = DEFAULT_RUNTIME_BINARY
    assistant_binary: str = DEFAULT_ASSISTANT_BINARY

    config_dir: Path = field(default_factory=lambda: default_config_dir())
    tool_settings_path: Path = field(default_factory=lambda: Path.home() / ".gemini" / "settings.json")
    tool_server: ToolServerConfig | None = None

    # Structured-mode extras
    allowed_tools: tuple[str, ...] = ()
    auto_approve_tools: bool = False

    body_char_limit: int = 8000
    attachment_char_limit: int = 4000
    history_limit: int = 20

    # Applied to the child environment only.
    quiet_child_env: Mapping[str, str] = field(default_factory=lambda: {"NODE_NO_WARNINGS": "1"})

    log_level: str = "WARNING"

    @property
    def account_path(self) -> Path:
        return self.config_dir / "account.json"

    def command_prefix(self) -> list[str]:
        if self.runtime_binary:
            return [self.runtime_binary, self.assistant_binary]
        return [self.assistant_binary]


def default_config_dir(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    xdg = env.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "geary-gemini"


def _split_csv(raw: str) -> tuple[str, ...]:
    out: list[str] = []
    for part in raw.split(","):
        item = part.strip()
        if item and item not in out:
            out.append(item)
    return tuple(out)


def load_config(environ: Mapping[str, str] | None = None, *, base: BridgeConfig | None = None) -> BridgeConfig:
    """
    Build a BridgeConfig from defaults plus `GEMINI_BRIDGE_*` environment overrides.

    Recognized variables:
    - GEMINI_BRIDGE_NODE (empty string disables the runtime prefix)
    - GEMINI_BRIDGE_BINARY
    - GEMINI_BRIDGE_CONFIG_DIR
    - GEMINI_BRIDGE_TOOL_SETTINGS
    - GEMINI_BRIDGE_ALLOWED_TOOLS (comma-separated)
    - GEMINI_BRIDGE_AUTO_APPROVE
    - GEMINI_BRIDGE_LOG_LEVEL
    """

    env = os.environ if environ is None else environ
    cfg = base or BridgeConfig(config_dir=default_config_dir(env))

    if "GEMINI_BRIDGE_NODE" in env:
        runtime = env["GEMINI_BRIDGE_NODE"].strip()
        cfg = replace(cfg, runtime_binary=runtime or None)

    binary = (env.get("GEMINI_BRIDGE_BINARY") or "").strip()
    if binary:
        cfg = replace(cfg, assistant_binary=binary)

    config_dir = (env.get("GEMINI_BRIDGE_CONFIG_DIR") or "").strip()
    if config_dir:
        cfg = replace(cfg, config_dir=Path(config_dir).expanduser())

    settings_path = (env.get("GEMINI_BRIDGE_TOOL_SETTINGS") or "").strip()
    if settings_path:
        cfg = replace(cfg, tool_settings_path=Path(settings_path).expanduser())

    allowed = env.get("GEMINI_BRIDGE_ALLOWED_TOOLS")
    if allowed is not None:
        cfg = replace(cfg, allowed_tools=_split_csv(allowed))

    approve = env.get("GEMINI_BRIDGE_AUTO_APPROVE")
    if approve is not None:
        cfg = replace(cfg, auto_approve_tools=approve.strip().lower() in _TRUTHY)

    level = (env.get("GEMINI_BRIDGE_LOG_LEVEL") or "").strip()
    if level:
        cfg = replace(cfg, log_level=level.upper())

    return cfg
