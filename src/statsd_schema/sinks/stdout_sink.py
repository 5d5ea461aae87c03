"""Stdout sink: write each metric as a JSON line (dev mode)."""

from __future__ import annotations

import json
import sys

from statsd_schema.sinks.base import RecordingSink, SinkCall


class StdoutSink(RecordingSink):
    """Write JSON metric dicts to stdout."""

    def record(self, call: SinkCall) -> None:
        line = json.dumps(call.to_dict(), default=str)
        sys.stdout.write(line + "\n")

    def flush(self) -> None:
        sys.stdout.flush()
