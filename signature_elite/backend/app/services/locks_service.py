# backend/app/services/locks_service.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0  # threads holding or waiting on `lock`


_registry_guard = threading.Lock()
_locks: dict[str, _Entry] = {}


def _acquire_entry(lock_key: str) -> _Entry:
    with _registry_guard:
        entry = _locks.get(lock_key)
        if entry is None:
            entry = _Entry()
            _locks[lock_key] = entry
        entry.holders += 1
        return entry


def _release_entry(lock_key: str, entry: _Entry) -> None:
    with _registry_guard:
        entry.holders -= 1
        if entry.holders == 0 and _locks.get(lock_key) is entry:
            del _locks[lock_key]


def property_lock_key(property_id: int) -> str:
    return f"property:{int(property_id)}"


def held_lock_count() -> int:
    with _registry_guard:
        return len(_locks)


@contextmanager
def entity_lock(lock_key: str) -> Iterator[None]:
    """
    Serializes conflicting operations on one entity inside this process.

    Cross-process safety comes from the conditional updates the callers issue
    while holding the lock; this only removes in-process interleavings. The
    registry entry is dropped once nobody holds or waits on it.
    """
    entry = _acquire_entry(lock_key)
    try:
        with entry.lock:
            yield
    finally:
        _release_entry(lock_key, entry)


def property_lock(property_id: int):
    return entity_lock(property_lock_key(property_id))
