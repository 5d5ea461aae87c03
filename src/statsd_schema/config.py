"""Configuration, env-var driven.

All settings have safe defaults; nothing is required for local use.
A SchemaConfig is built once at startup and passed explicitly to
Emitters (or installed as the process default via emitter.configure()).

    STATSD_SCHEMA_VALIDATION_MODE=strict (default) | warn | drop | off
    STATSD_SCHEMA_GLOBAL_TAGS=env:production,region:us-east-1
    STATSD_SCHEMA_SAMPLE_RATE=1.0
    STATSD_SCHEMA_SINK=noop (default) | memory | stdout | jsonl
    STATSD_SCHEMA_SINK_PATH=/var/log/metrics.jsonl   (jsonl sink)
    STATSD_SCHEMA_FILE=config/metrics.yaml           (default schema for the CLI)
    STATSD_SCHEMA_DEBUG=1                            (log every forwarded metric)

Logging (formatter x destination, see statsd_schema.logging):
    STATSD_SCHEMA_LOG_FORMATTER=structlog (default) | stdlib
    STATSD_SCHEMA_LOG_DESTINATION=stderr (default) | jsonl
    STATSD_SCHEMA_LOG_LEVEL=INFO
    STATSD_SCHEMA_LOG_FORMAT=console (default) | json
    STATSD_SCHEMA_LOG_PATH=/tmp/statsd_schema.jsonl
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

ENV_PREFIX = "STATSD_SCHEMA_"

_TRUTHY = {"1", "true", "on", "yes"}


class ValidationMode(str, Enum):
    """How the emitter reacts to a schema violation."""

    STRICT = "strict"  # raise; the metric is not sent
    WARN = "warn"  # log a warning and send anyway
    DROP = "drop"  # silently discard the metric
    OFF = "off"  # skip validation entirely


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def _bool_env(name: str) -> bool:
    return (_env(name, "") or "").lower() in _TRUTHY


def _float_env(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ValueError(f"{ENV_PREFIX}{name}={raw!r} is not a valid number") from err


def _mode_env() -> ValidationMode:
    raw = _env("VALIDATION_MODE", "strict") or "strict"
    try:
        return parse_validation_mode(raw)
    except ValueError as err:
        raise ValueError(f"{ENV_PREFIX}VALIDATION_MODE: {err}") from None


def parse_tag_string(raw: str | None) -> dict[str, str]:
    """Parse ``k:v,k2:v2`` into a dict. A bare key maps to an empty string."""
    tags: dict[str, str] = {}
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        key, _, value = item.partition(":")
        tags[key.strip()] = value.strip()
    return tags


def parse_validation_mode(value: ValidationMode | str) -> ValidationMode:
    try:
        return ValidationMode(str(value.value if isinstance(value, Enum) else value).lower())
    except ValueError:
        raise ValueError(
            f"Unknown validation mode: {value!r}. "
            f"Available: {[m.value for m in ValidationMode]}"
        ) from None


@dataclass
class SchemaConfig:
    """Process configuration for validation, forwarding, and logging."""

    # --- Validation / forwarding ---
    validation_mode: ValidationMode = field(default_factory=_mode_env)
    global_tags: dict[str, str] = field(
        default_factory=lambda: parse_tag_string(_env("GLOBAL_TAGS"))
    )
    sample_rate: float = field(default_factory=lambda: _float_env("SAMPLE_RATE", 1.0))

    sink: str = field(default_factory=lambda: _env("SINK", "noop") or "noop")
    sink_path: str | None = field(default_factory=lambda: _env("SINK_PATH"))

    schema_path: str | None = field(default_factory=lambda: _env("FILE"))
    debug: bool = field(default_factory=lambda: _bool_env("DEBUG"))

    # --- Logging: formatter x destination ---
    log_formatter: str = field(
        default_factory=lambda: _env("LOG_FORMATTER", "structlog") or "structlog"
    )  # "structlog" | "stdlib"
    log_destination: str = field(
        default_factory=lambda: _env("LOG_DESTINATION", "stderr") or "stderr"
    )  # "stderr" | "jsonl"
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO") or "INFO")
    log_format: str = field(
        default_factory=lambda: _env("LOG_FORMAT", "console") or "console"
    )  # "console" | "json"
    log_path: str | None = field(default_factory=lambda: _env("LOG_PATH"))

    def __post_init__(self) -> None:
        self.validation_mode = parse_validation_mode(self.validation_mode)
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ValueError(f"sample_rate must be between 0 and 1, got {self.sample_rate}")
        self.global_tags = {str(k): v for k, v in self.global_tags.items()}
