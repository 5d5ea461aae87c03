"""Tests for metric sinks.

Coverage:
- MetricSink protocol conformance for every built-in sink
- RecordingSink subclasses must implement record()
- MemorySink recording, clear, flush/close bookkeeping, thread safety
- StdoutSink / JsonlSink line output
- create_sink registry: names, jsonl path requirement, unknown sinks, custom sinks
"""

from __future__ import annotations

import json
import threading

import pytest

from statsd_schema.config import SchemaConfig
from statsd_schema.sinks import (
    SINK_METHODS,
    JsonlSink,
    MemorySink,
    MetricSink,
    NoOpSink,
    StdoutSink,
    available_sinks,
    create_sink,
    register_sink,
)
from statsd_schema.sinks.base import RecordingSink, SinkCall

# =============================================================================
# Protocol
# =============================================================================


class TestProtocol:
    @pytest.mark.parametrize("cls", [NoOpSink, MemorySink, StdoutSink])
    def test_builtin_sinks_conform(self, cls):
        assert isinstance(cls(), MetricSink)

    def test_jsonl_conforms(self, tmp_path):
        assert isinstance(JsonlSink(tmp_path / "m.jsonl"), MetricSink)

    def test_every_kind_has_a_method(self):
        sink = MemorySink()
        for method in SINK_METHODS:
            getattr(sink, method)(f"m.{method}", 1)
        assert [c.method for c in sink.calls] == list(SINK_METHODS)

    def test_recording_sink_requires_record(self):
        class Incomplete(RecordingSink):
            pass

        with pytest.raises(TypeError):
            RecordingSink()  # type: ignore[abstract]
        with pytest.raises(TypeError):
            Incomplete()  # type: ignore[abstract]

    def test_sink_call_to_dict(self):
        call = SinkCall("gauge", "web.memory", 12, {"env": "prod"}, 0.5)
        assert call.to_dict() == {
            "method": "gauge",
            "name": "web.memory",
            "value": 12,
            "tags": {"env": "prod"},
            "sample_rate": 0.5,
        }


# =============================================================================
# Sinks
# =============================================================================


class TestNoOpSink:
    def test_discards(self):
        sink = NoOpSink()
        sink.increment("a", tags={"k": "v"})
        sink.flush()
        sink.close()


class TestMemorySink:
    def test_records_calls(self):
        sink = MemorySink()
        sink.increment("a", tags={"k": "v"}, sample_rate=0.5)
        sink.gauge("b", 3)
        assert sink.calls == [
            SinkCall("increment", "a", 1, {"k": "v"}, 0.5),
            SinkCall("gauge", "b", 3, {}, 1.0),
        ]
        assert sink.names() == ["a", "b"]

    def test_calls_is_a_copy(self):
        sink = MemorySink()
        sink.increment("a")
        sink.calls.clear()
        assert len(sink.calls) == 1

    def test_clear(self):
        sink = MemorySink()
        sink.increment("a")
        sink.clear()
        assert sink.calls == []

    def test_flush_and_close(self):
        sink = MemorySink()
        sink.flush()
        sink.flush()
        sink.close()
        assert sink.flushed == 2
        assert sink.closed

    def test_concurrent_records(self):
        sink = MemorySink()

        def worker():
            for _ in range(100):
                sink.increment("a")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(sink.calls) == 800


class TestStdoutSink:
    def test_writes_json_lines(self, capsys):
        sink = StdoutSink()
        sink.histogram("web.payload", 512, tags={"env": "prod"})
        sink.flush()
        line = capsys.readouterr().out.strip()
        assert json.loads(line) == {
            "method": "histogram",
            "name": "web.payload",
            "value": 512,
            "tags": {"env": "prod"},
            "sample_rate": 1.0,
        }


class TestJsonlSink:
    def test_appends_lines(self, tmp_path):
        path = tmp_path / "nested" / "metrics.jsonl"
        sink = JsonlSink(path)
        sink.increment("a")
        sink.timing("b", 1.5)
        assert sink.path == path
        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [(d["method"], d["name"]) for d in lines] == [("increment", "a"), ("timing", "b")]

    def test_unserialisable_values_stringified(self, tmp_path):
        path = tmp_path / "metrics.jsonl"
        JsonlSink(path).set("visitors", object())
        assert json.loads(path.read_text())["value"].startswith("<object object")


# =============================================================================
# Registry
# =============================================================================


class TestCreateSink:
    def test_available(self):
        assert available_sinks()[:4] == ["noop", "memory", "stdout", "jsonl"]

    @pytest.mark.parametrize(
        "name, cls", [("noop", NoOpSink), ("memory", MemorySink), ("stdout", StdoutSink)]
    )
    def test_by_name(self, name, cls):
        assert isinstance(create_sink(SchemaConfig(sink=name)), cls)

    def test_jsonl_needs_path(self):
        with pytest.raises(ValueError, match="STATSD_SCHEMA_SINK_PATH is required"):
            create_sink(SchemaConfig(sink="jsonl"))

    def test_jsonl_with_path(self, tmp_path):
        sink = create_sink(SchemaConfig(sink="jsonl", sink_path=str(tmp_path / "m.jsonl")))
        assert isinstance(sink, JsonlSink)

    def test_sink_from_environment(self, monkeypatch):
        monkeypatch.setenv("STATSD_SCHEMA_SINK", "memory")
        assert isinstance(create_sink(SchemaConfig()), MemorySink)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown sink: 'statsd'"):
            create_sink(SchemaConfig(sink="statsd"))

    def test_register_custom(self, monkeypatch):
        from statsd_schema import sinks

        monkeypatch.setattr(sinks, "_SINKS", dict(sinks._SINKS))

        class CountingSink(MemorySink):
            pass

        register_sink("counting", CountingSink)
        assert isinstance(create_sink(SchemaConfig(sink="counting")), CountingSink)
