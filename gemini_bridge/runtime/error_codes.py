from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NOT_INSTALLED = "not_installed"
    AUTH_REQUIRED = "auth_required"
    AUTH_FAILED = "auth_failed"
    PROCESS_FAILURE = "process_failure"
    SPAWN_FAILED = "spawn_failed"
    ACCOUNT_STORE = "account_store"
    SETTINGS = "settings"
