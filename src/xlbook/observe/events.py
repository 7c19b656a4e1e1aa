"""Timing and NDJSON lifecycle events."""

from __future__ import annotations

import json
import sys
import threading
import time
from datetime import datetime, timezone
from typing import Any, TextIO


class Timer:
    """Wall time of a ``with`` block, in whole milliseconds, for envelope metrics."""

    elapsed_ms: int = 0

    def __enter__(self) -> "Timer":
        self._started_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *exc: object) -> None:
        self.elapsed_ms = (time.perf_counter_ns() - self._started_ns) // 1_000_000


class EventEmitter:
    """Writes one JSON object per event to *stream* (stderr by default).

    Disabled emitters are no-ops, so the engine can call ``emit`` everywhere.
    Lines from different threads never interleave.
    """

    def __init__(self, enabled: bool = False, stream: TextIO | None = None) -> None:
        self.enabled = enabled
        self.stream = stream
        self._lock = threading.Lock()

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        payload = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data or {},
        }
        out = self.stream or sys.stderr
        with self._lock:
            out.write(json.dumps(payload) + "\n")
            out.flush()
