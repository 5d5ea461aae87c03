"""In-memory sink: records every call. Used by tests and dry runs."""

from __future__ import annotations

import threading

from statsd_schema.sinks.base import RecordingSink, SinkCall


class MemorySink(RecordingSink):
    """Keep forwarded metrics in a list. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: list[SinkCall] = []
        self.flushed = 0
        self.closed = False

    def record(self, call: SinkCall) -> None:
        with self._lock:
            self._calls.append(call)

    @property
    def calls(self) -> list[SinkCall]:
        with self._lock:
            return list(self._calls)

    def names(self) -> list[str]:
        return [c.name for c in self.calls]

    def clear(self) -> None:
        with self._lock:
            self._calls.clear()

    def flush(self) -> None:
        self.flushed += 1

    def close(self) -> None:
        self.closed = True
