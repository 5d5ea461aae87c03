"""Tests for env-driven configuration.

Coverage:
- Defaults with a clean environment
- Every STATSD_SCHEMA_* variable
- Validation mode parsing, sample rate bounds, tag string parsing
"""

from __future__ import annotations

import pytest

from statsd_schema.config import (
    SchemaConfig,
    ValidationMode,
    parse_tag_string,
    parse_validation_mode,
)


class TestDefaults:
    def test_defaults(self):
        cfg = SchemaConfig()
        assert cfg.validation_mode is ValidationMode.STRICT
        assert cfg.global_tags == {}
        assert cfg.sample_rate == 1.0
        assert cfg.sink == "noop"
        assert cfg.sink_path is None
        assert cfg.schema_path is None
        assert cfg.debug is False
        assert cfg.log_formatter == "structlog"
        assert cfg.log_destination == "stderr"
        assert cfg.log_level == "INFO"
        assert cfg.log_format == "console"


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("STATSD_SCHEMA_VALIDATION_MODE", "WARN")
        monkeypatch.setenv("STATSD_SCHEMA_GLOBAL_TAGS", "env:production, region:us-east-1")
        monkeypatch.setenv("STATSD_SCHEMA_SAMPLE_RATE", "0.1")
        monkeypatch.setenv("STATSD_SCHEMA_SINK", "jsonl")
        monkeypatch.setenv("STATSD_SCHEMA_SINK_PATH", "/tmp/metrics.jsonl")
        monkeypatch.setenv("STATSD_SCHEMA_FILE", "config/metrics.yaml")
        monkeypatch.setenv("STATSD_SCHEMA_DEBUG", "true")
        monkeypatch.setenv("STATSD_SCHEMA_LOG_FORMAT", "json")

        cfg = SchemaConfig()
        assert cfg.validation_mode is ValidationMode.WARN
        assert cfg.global_tags == {"env": "production", "region": "us-east-1"}
        assert cfg.sample_rate == 0.1
        assert cfg.sink == "jsonl"
        assert cfg.sink_path == "/tmp/metrics.jsonl"
        assert cfg.schema_path == "config/metrics.yaml"
        assert cfg.debug is True
        assert cfg.log_format == "json"

    @pytest.mark.parametrize("raw", ["0", "false", "no", ""])
    def test_debug_falsy(self, monkeypatch, raw):
        monkeypatch.setenv("STATSD_SCHEMA_DEBUG", raw)
        assert SchemaConfig().debug is False

    def test_bad_mode_names_variable(self, monkeypatch):
        monkeypatch.setenv("STATSD_SCHEMA_VALIDATION_MODE", "loud")
        with pytest.raises(ValueError, match="STATSD_SCHEMA_VALIDATION_MODE: Unknown validation mode"):
            SchemaConfig()

    def test_bad_sample_rate(self, monkeypatch):
        monkeypatch.setenv("STATSD_SCHEMA_SAMPLE_RATE", "often")
        with pytest.raises(ValueError, match="STATSD_SCHEMA_SAMPLE_RATE='often' is not a valid number"):
            SchemaConfig()


class TestExplicitValues:
    def test_mode_string_normalised(self):
        assert SchemaConfig(validation_mode="off").validation_mode is ValidationMode.OFF

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_sample_rate_bounds(self, rate):
        with pytest.raises(ValueError, match="sample_rate must be between 0 and 1"):
            SchemaConfig(sample_rate=rate)

    def test_global_tag_keys_stringified(self):
        assert SchemaConfig(global_tags={1: "a"}).global_tags == {"1": "a"}


class TestParsing:
    def test_parse_tag_string(self):
        assert parse_tag_string("a:1,b:2") == {"a": "1", "b": "2"}
        assert parse_tag_string("flag, ,k:v") == {"flag": "", "k": "v"}
        assert parse_tag_string("url:http://x") == {"url": "http://x"}
        assert parse_tag_string(None) == {}

    @pytest.mark.parametrize("raw", ["strict", "STRICT", ValidationMode.STRICT])
    def test_parse_validation_mode(self, raw):
        assert parse_validation_mode(raw) is ValidationMode.STRICT

    def test_parse_validation_mode_unknown(self):
        with pytest.raises(ValueError, match="Available: \\['strict', 'warn', 'drop', 'off'\\]"):
            parse_validation_mode("loud")
