"""Metric sinks: strategy pattern for where validated metrics go."""

from __future__ import annotations

from typing import TYPE_CHECKING

from statsd_schema.sinks.base import SINK_METHODS, MetricSink, RecordingSink, SinkCall
from statsd_schema.sinks.jsonl_sink import JsonlSink
from statsd_schema.sinks.memory_sink import MemorySink
from statsd_schema.sinks.noop_sink import NoOpSink
from statsd_schema.sinks.stdout_sink import StdoutSink

if TYPE_CHECKING:
    from statsd_schema.config import SchemaConfig

_SINKS: dict[str, type] = {
    "noop": NoOpSink,
    "memory": MemorySink,
    "stdout": StdoutSink,
    "jsonl": JsonlSink,
}


def available_sinks() -> list[str]:
    return list(_SINKS)


def register_sink(name: str, cls: type) -> None:
    """Register a custom sink class; it is constructed with no arguments."""
    _SINKS[name] = cls


def create_sink(config: SchemaConfig) -> MetricSink:
    """Construct the sink named by ``config.sink``."""
    cls = _SINKS.get(config.sink)
    if cls is None:
        raise ValueError(
            f"Unknown sink: {config.sink!r}. Available: {available_sinks()}. "
            f"Register custom sinks with register_sink()."
        )
    if cls is JsonlSink:
        if not config.sink_path:
            raise ValueError("STATSD_SCHEMA_SINK_PATH is required for the jsonl sink")
        return JsonlSink(config.sink_path)
    return cls()


__all__ = [
    "MetricSink",
    "SinkCall",
    "RecordingSink",
    "SINK_METHODS",
    "NoOpSink",
    "MemorySink",
    "StdoutSink",
    "JsonlSink",
    "available_sinks",
    "register_sink",
    "create_sink",
]
