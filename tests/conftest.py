"""
Shared fixtures.

Process-level tests run a small Python script in place of the Gemini CLI, with the
current interpreter standing in for the bundled Node runtime.
"""

from __future__ import annotations

import os
import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest
import structlog

from gemini_bridge.runtime.config import BridgeConfig


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


FAKE_PREAMBLE = """\
import json
import os
import sys
import time
from pathlib import Path

ARGS = sys.argv[1:]
STATE = Path(os.environ["FAKE_STATE_DIR"])
"""


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    d = tmp_path / "fake-state"
    d.mkdir()
    return d


@pytest.fixture
def fake_environ(state_dir: Path) -> dict[str, str]:
    env = dict(os.environ)
    env["FAKE_STATE_DIR"] = str(state_dir)
    env["LANG"] = "en_US.UTF-8"
    env.pop("LC_ALL", None)
    env.pop("LC_MESSAGES", None)
    env.pop("NODE_NO_WARNINGS", None)
    return env


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., BridgeConfig]:
    """Write a fake assistant script and return a config that runs it."""

    def _make(body: str, **overrides) -> BridgeConfig:
        script = tmp_path / "fake_gemini.py"
        script.write_text(FAKE_PREAMBLE + textwrap.dedent(body), encoding="utf-8")
        params = dict(
            runtime_binary=sys.executable,
            assistant_binary=str(script),
            config_dir=tmp_path / "config",
            tool_settings_path=tmp_path / "gemini" / "settings.json",
        )
        params.update(overrides)
        return BridgeConfig(**params)

    return _make


@pytest.fixture
def missing_config(tmp_path: Path) -> BridgeConfig:
    return BridgeConfig(
        runtime_binary=sys.executable,
        assistant_binary=str(tmp_path / "not-installed" / "gemini"),
        config_dir=tmp_path / "config",
        tool_settings_path=tmp_path / "gemini" / "settings.json",
    )

