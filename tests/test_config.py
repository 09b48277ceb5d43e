from __future__ import annotations

from pathlib import Path

from gemini_bridge.runtime.config import (
    DEFAULT_ASSISTANT_BINARY,
    DEFAULT_RUNTIME_BINARY,
    BridgeConfig,
    default_config_dir,
    load_config,
)


def test_defaults() -> None:
    cfg = load_config({"XDG_CONFIG_HOME": "/xdg"})
    assert cfg.runtime_binary == DEFAULT_RUNTIME_BINARY
    assert cfg.assistant_binary == DEFAULT_ASSISTANT_BINARY
    assert cfg.account_path == Path("/xdg/geary-gemini/account.json")
    assert cfg.quiet_child_env == {"NODE_NO_WARNINGS": "1"}
    assert cfg.command_prefix() == [DEFAULT_RUNTIME_BINARY, DEFAULT_ASSISTANT_BINARY]
    assert cfg.allowed_tools == ()
    assert not cfg.auto_approve_tools


def test_default_config_dir_without_xdg() -> None:
    assert default_config_dir({}) == Path.home() / ".config" / "geary-gemini"


def test_environment_overrides() -> None:
    cfg = load_config(
        {
            "GEMINI_BRIDGE_NODE": "/opt/node",
            "GEMINI_BRIDGE_BINARY": "/opt/gemini",
            "GEMINI_BRIDGE_CONFIG_DIR": "/tmp/bridge",
            "GEMINI_BRIDGE_TOOL_SETTINGS": "/tmp/settings.json",
            "GEMINI_BRIDGE_ALLOWED_TOOLS": "geary-email, other ,geary-email",
            "GEMINI_BRIDGE_AUTO_APPROVE": "yes",
            "GEMINI_BRIDGE_LOG_LEVEL": "debug",
        }
    )
    assert cfg.command_prefix() == ["/opt/node", "/opt/gemini"]
    assert cfg.account_path == Path("/tmp/bridge/account.json")
    assert cfg.tool_settings_path == Path("/tmp/settings.json")
    assert cfg.allowed_tools == ("geary-email", "other")
    assert cfg.auto_approve_tools
    assert cfg.log_level == "DEBUG"


def test_empty_runtime_runs_binary_directly() -> None:
    cfg = load_config({"GEMINI_BRIDGE_NODE": "", "GEMINI_BRIDGE_BINARY": "/usr/bin/gemini"})
    assert cfg.runtime_binary is None
    assert cfg.command_prefix() == ["/usr/bin/gemini"]


def test_base_config_is_respected() -> None:
    base = BridgeConfig(assistant_binary="/base/gemini", config_dir=Path("/base"))
    cfg = load_config({}, base=base)
    assert cfg is base
