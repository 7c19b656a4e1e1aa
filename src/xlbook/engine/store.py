"""PartStore: thread-safe mapping of part path -> raw bytes or parsed model."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any


class PartStore:
    """Owns every part of one document.

    An entry is either the raw ``bytes`` read from the container or the model
    the cache materialized from them. Each path has its own re-entrant lock,
    so calls on different paths never wait on each other; calls on the same
    path are serialized. No cross-path invariant is enforced here.
    """

    def __init__(self, parts: Mapping[str, bytes] | None = None) -> None:
        self._entries: dict[str, Any] = dict(parts or {})
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, path: str) -> Iterator[None]:
        """Hold the lock of *path* across several store calls."""
        with self._lock_for(path):
            yield

    def load(self, path: str) -> Any | None:
        with self._lock_for(path):
            return self._entries.get(path)

    def store(self, path: str, payload: Any) -> None:
        with self._lock_for(path):
            self._entries[path] = payload

    def delete(self, path: str) -> None:
        with self._lock_for(path):
            self._entries.pop(path, None)

    def paths(self) -> set[str]:
        return set(self._entries.copy())

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)
