from __future__ import annotations

from .store import AccountRecord, AccountStore, AccountStoreError

__all__ = [
    "AccountRecord",
    "AccountStore",
    "AccountStoreError",
]
