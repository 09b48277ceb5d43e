from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import structlog
from pydantic import BaseModel, Field, field_validator

from ..config import ToolServerConfig
from ..error_codes import ErrorCode

logger = structlog.get_logger()

SERVERS_KEY = "mcpServers"


class ToolSettingsError(RuntimeError):
    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.code = ErrorCode.SETTINGS
        self.path = path


class McpServerEntry(BaseModel):
    """One entry of the assistant's `mcpServers` map."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("command")
    @classmethod
    def _validate_command(cls, v: str) -> str:
        cleaned = (v or "").strip()
        if not cleaned:
            raise ValueError("command must be a non-empty string.")
        return cleaned

    @classmethod
    def from_config(cls, server: ToolServerConfig, *, environ: Mapping[str, str] | None = None) -> McpServerEntry:
        env_src = os.environ if environ is None else environ
        forwarded = {key: env_src[key] for key in server.forward_env if env_src.get(key)}
        return cls(command=server.command, args=list(server.args), env=forwarded)


def _read_settings(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ToolSettingsError(f"Failed to read settings file {path}: {e}", path=path) from e
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        # Refuse to overwrite a document we cannot parse.
        raise ToolSettingsError(f"Invalid JSON in settings file {path}: {e}", path=path) from e
    if not isinstance(data, dict):
        raise ToolSettingsError(f"Settings file {path} does not contain a JSON object.", path=path)
    return data


def register_tool_server(
    path: Path,
    server: ToolServerConfig,
    *,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Merge the tool server entry into the assistant's settings document.

    Unrelated top-level keys and other registered servers are preserved; only
    `mcpServers.<service_name>` is replaced. Returns the written document.
    """

    data = _read_settings(path)
    servers = data.get(SERVERS_KEY)
    if not isinstance(servers, dict):
        servers = {}
    entry = McpServerEntry.from_config(server, environ=environ)
    servers[server.service_name] = entry.model_dump()
    data[SERVERS_KEY] = servers

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        tmp.replace(path)
    except OSError as e:
        raise ToolSettingsError(f"Failed to write settings file {path}: {e}", path=path) from e

    logger.info("tool_server_registered", service=server.service_name, forwarded_env=sorted(entry.env))
    return data
