from __future__ import annotations

import json
from pathlib import Path

import pytest

from gemini_bridge.runtime.accounts import AccountRecord, AccountStore, AccountStoreError


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "cfg" / "account.json"


def test_missing_file_loads_as_none(store_path: Path) -> None:
    store = AccountStore(store_path)
    assert store.load() is None
    assert store.read() == AccountRecord()


def test_switch_then_load_round_trip(store_path: Path) -> None:
    store = AccountStore(store_path)
    store.switch("alice@example.com")
    assert store.load() == "alice@example.com"
    assert AccountStore(store_path).load() == "alice@example.com"


def test_document_layout(store_path: Path) -> None:
    AccountStore(store_path).switch("alice@example.com")
    doc = json.loads(store_path.read_text(encoding="utf-8"))
    assert doc == {"active": "alice@example.com", "old": []}


def test_switch_is_idempotent(store_path: Path) -> None:
    store = AccountStore(store_path)
    store.switch("alice@example.com")
    first = store_path.read_text(encoding="utf-8")
    store.switch("alice@example.com")
    assert store_path.read_text(encoding="utf-8") == first


def test_previous_account_goes_to_history(store_path: Path) -> None:
    store = AccountStore(store_path)
    store.switch("a@example.com")
    store.switch("b@example.com")
    record, previous = store.switch("c@example.com")
    assert record.active == "c@example.com"
    assert previous == "b@example.com"
    assert record.history == ["a@example.com", "b@example.com"]

    record, previous = store.switch("a@example.com")
    assert previous == "c@example.com"
    assert record.history == ["b@example.com", "c@example.com"]


def test_history_is_capped(store_path: Path) -> None:
    store = AccountStore(store_path, history_limit=2)
    for name in ["a", "b", "c", "d"]:
        store.switch(f"{name}@example.com")
    assert store.read().history == ["b@example.com", "c@example.com"]


def test_unknown_keys_survive_rewrite(store_path: Path) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(json.dumps({"active": "a@example.com", "old": ["z@example.com"], "theme": "dark"}))
    AccountStore(store_path).switch("b@example.com")
    doc = json.loads(store_path.read_text(encoding="utf-8"))
    assert doc["theme"] == "dark"
    assert doc["active"] == "b@example.com"
    assert doc["old"] == ["z@example.com", "a@example.com"]


@pytest.mark.parametrize("content", ["{broken", "[]", '{"active": 42}', ""])
def test_unreadable_document_is_treated_as_absent(store_path: Path, content: str) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(content)
    assert AccountStore(store_path).load() is None


def test_blank_identity_is_rejected(store_path: Path) -> None:
    with pytest.raises(ValueError):
        AccountStore(store_path).switch("   ")
    assert not store_path.exists()


def test_on_change_reports_new_and_previous(store_path: Path) -> None:
    seen: list[tuple[str, str | None]] = []
    store = AccountStore(store_path, on_change=lambda new, prev: seen.append((new, prev)))
    store.switch("a@example.com")
    store.switch("b@example.com")
    assert seen == [("a@example.com", None), ("b@example.com", "a@example.com")]


def test_write_failure_raises_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = AccountStore(blocker / "account.json")
    with pytest.raises(AccountStoreError):
        store.switch("a@example.com")
