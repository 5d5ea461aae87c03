"""No-op sink: default when no metrics backend is configured."""

from __future__ import annotations

from statsd_schema.sinks.base import RecordingSink, SinkCall


class NoOpSink(RecordingSink):
    """Discards all metrics. Zero overhead."""

    def record(self, call: SinkCall) -> None:
        pass
