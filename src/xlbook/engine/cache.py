"""LazyCache: parse-on-first-touch over the PartStore."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol, TypeVar
from xml.parsers import expat

from xlbook.contracts.errors import MalformedPartError, MissingPartError
from xlbook.engine.store import PartStore
from xlbook.observe.events import EventEmitter


class PartModel(Protocol):
    def check(self) -> None: ...

    def to_bytes(self) -> bytes: ...


M = TypeVar("M", bound=PartModel)


class LazyCache:
    """Tracks which stored parts are materialized.

    A path moves from raw bytes to a parsed model the first time a caller asks
    for its structure. The cache owns no copies, only the set of paths whose
    model is current for this generation. ``reset`` starts a new generation:
    models already in the store are re-checked (not re-parsed) on next touch.
    """

    def __init__(self, store: PartStore, events: EventEmitter | None = None) -> None:
        self.store = store
        self.events = events or EventEmitter()
        self._checked: set[str] = set()
        self._guard = threading.Lock()

    def is_materialized(self, path: str) -> bool:
        with self._guard:
            return path in self._checked

    def _mark(self, path: str) -> None:
        with self._guard:
            self._checked.add(path)

    def discard(self, path: str) -> None:
        with self._guard:
            self._checked.discard(path)

    def reset(self) -> None:
        with self._guard:
            self._checked.clear()

    def adopt(self, path: str, model: M) -> M:
        """Store a freshly built model as already materialized."""
        with self.store.locked(path):
            self.store.store(path, model)
            self._mark(path)
        return model

    def materialize(self, path: str, factory: Callable[[bytes], M]) -> M:
        """Return the model stored at *path*, parsing its bytes with *factory* if needed.

        Raises ``MissingPartError`` when the store has no entry and
        ``MalformedPartError`` when the bytes do not parse; the raw entry is
        left in place.
        """
        with self.store.locked(path):
            entry = self.store.load(path)
            if entry is None:
                raise MissingPartError(path)
            if isinstance(entry, (bytes, bytearray)):
                try:
                    model = factory(bytes(entry))
                except expat.ExpatError as e:
                    raise MalformedPartError(path, e) from e
                self.store.store(path, model)
                self._mark(path)
                self.events.emit("part.materialized", {"path": path})
                return model
            if not self.is_materialized(path):
                entry.check()
                self._mark(path)
            return entry
