"""JSONL file sink: append one JSON line per metric to a file."""

from __future__ import annotations

import json
from pathlib import Path

from statsd_schema.sinks.base import RecordingSink, SinkCall


class JsonlSink(RecordingSink):
    """Append JSON lines to a file. Thread-safe via append mode."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def record(self, call: SinkCall) -> None:
        line = json.dumps(call.to_dict(), default=str) + "\n"
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line)
