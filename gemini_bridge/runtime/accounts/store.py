from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..error_codes import ErrorCode

logger = structlog.get_logger()


class AccountStoreError(RuntimeError):
    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.code = ErrorCode.ACCOUNT_STORE
        self.path = path


def _clean_identity(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


class AccountRecord(BaseModel):
    """
    Persisted `{"active": ..., "old": [...]}` document.

    `history` is stored under the `old` key; unknown keys are kept on rewrite.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    active: str | None = None
    history: list[str] = Field(default_factory=list, alias="old")

    @field_validator("active", mode="before")
    @classmethod
    def _validate_active(cls, v: Any) -> str | None:
        return _clean_identity(v)

    @field_validator("history", mode="before")
    @classmethod
    def _validate_history(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        out: list[str] = []
        for raw in v:
            item = _clean_identity(raw)
            if item and item not in out:
                out.append(item)
        return out

    def to_document(self) -> dict[str, Any]:
        doc = self.model_dump(by_alias=True, exclude_none=True)
        doc.setdefault("old", [])
        return doc

    def switched_to(self, identity: str, *, history_limit: int) -> AccountRecord:
        previous = self.active
        history = [h for h in self.history if h != identity]
        if previous and previous != identity and previous not in history:
            history.append(previous)
        if history_limit >= 0 and len(history) > history_limit:
            history = history[len(history) - history_limit :]
        return self.model_copy(update={"active": identity, "history": history})


class AccountStore:
    def __init__(
        self,
        path: Path,
        *,
        history_limit: int = 20,
        on_change: Callable[[str, str | None], None] | None = None,
    ) -> None:
        self.path = path
        self.history_limit = history_limit
        self._on_change = on_change

    def read(self) -> AccountRecord:
        """Read the document; a missing or unreadable file yields an empty record."""

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return AccountRecord()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("account_document_unreadable", path=str(self.path), error=str(e))
            return AccountRecord()
        if not isinstance(raw, dict):
            return AccountRecord()
        try:
            return AccountRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning("account_document_invalid", path=str(self.path), error=str(e))
            return AccountRecord()

    def load(self) -> str | None:
        return self.read().active

    def switch(self, identity: str) -> tuple[AccountRecord, str | None]:
        """Make `identity` active; returns the written record and the identity it replaced."""

        cleaned = _clean_identity(identity)
        if cleaned is None:
            raise ValueError("identity must be a non-empty string.")

        current = self.read()
        updated = current.switched_to(cleaned, history_limit=self.history_limit)
        self._write(updated)
        logger.info("active_account_switched", history_len=len(updated.history))
        if self._on_change is not None:
            self._on_change(cleaned, current.active)
        return updated, current.active

    def _write(self, record: AccountRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(
                json.dumps(record.to_document(), ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
            tmp.replace(self.path)
        except OSError as e:
            raise AccountStoreError(f"Failed to write account document {self.path}: {e}", path=self.path) from e
