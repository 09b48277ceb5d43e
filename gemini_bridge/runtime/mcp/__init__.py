from __future__ import annotations

from .settings import McpServerEntry, ToolSettingsError, register_tool_server

__all__ = [
    "McpServerEntry",
    "ToolSettingsError",
    "register_tool_server",
]
