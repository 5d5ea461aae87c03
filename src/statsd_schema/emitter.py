"""Schema-aware metric emitter: validate, apply the policy, forward to a sink.

    emitter = Emitter(
        "CheckoutController",
        schema=my_schema,
        tags={"environment": "production"},
        validation_mode="warn",
    )
    emitter.increment("web.requests.total", tags={"service": "api"})

Each Emitter holds its own config, sink, and validator. The module-level
configure() / get_default_sink() pair is a convenience for applications
that want one process-wide sink; Emitters created without an explicit sink
use it.
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Callable, Mapping
from types import ModuleType
from typing import Any

from statsd_schema.config import SchemaConfig, ValidationMode, parse_validation_mode
from statsd_schema.errors import SchemaError
from statsd_schema.logging import get_logger, setup_logging
from statsd_schema.schema.builder import SchemaBuilder
from statsd_schema.schema.namespace import Namespace
from statsd_schema.schema.transformers import Transformer, underscore
from statsd_schema.sinks import MetricSink, create_sink
from statsd_schema.validator import Validator

DEFAULT_SAMPLE_RATE = 1.0

# Sink call per operation; count has no sink method of its own.
_SINK_CALLS: dict[str, Callable[[MetricSink], Callable[..., None]]] = {
    "increment": lambda sink: sink.increment,
    "decrement": lambda sink: sink.decrement,
    "count": lambda sink: sink.increment,
    "gauge": lambda sink: sink.gauge,
    "histogram": lambda sink: sink.histogram,
    "distribution": lambda sink: sink.distribution,
    "timing": lambda sink: sink.timing,
    "set": lambda sink: sink.set,
}

_lock = threading.Lock()
_config: SchemaConfig | None = None
_sink: MetricSink | None = None
_configured: bool = False


def configure(config: SchemaConfig | None = None, sink: MetricSink | None = None) -> MetricSink:
    """Install the process-wide default config and sink.

    Called once at startup. Idempotent: a second call returns the existing
    sink. Guarded by a lock so concurrent first use builds one sink only.
    """
    global _config, _sink, _configured

    with _lock:
        if _configured and _sink is not None:
            return _sink

        cfg = config or SchemaConfig()
        setup_logging(cfg)
        _sink = sink if sink is not None else create_sink(cfg)
        _config = cfg
        _configured = True

    get_logger("statsd_schema.emitter").info(
        "emitter.configured",
        sink=type(_sink).__name__,
        validation_mode=cfg.validation_mode.value,
        global_tags=cfg.global_tags,
    )
    return _sink


def get_default_sink() -> MetricSink:
    if _configured and _sink is not None:
        return _sink
    return configure()


def get_default_config() -> SchemaConfig:
    if _configured and _config is not None:
        return _config
    return SchemaConfig()


def is_configured() -> bool:
    return _configured


def reset() -> None:
    """Close the default sink and forget it. For tests."""
    global _config, _sink, _configured
    with _lock:
        if _sink is not None:
            _sink.close()
        _config = None
        _sink = None
        _configured = False


def source_name(source: Any) -> str | None:
    """Turn a class, module, object, or string into a dotted snake_case name.

    ``Shop.CheckoutController`` → ``shop.checkout_controller``. A plain
    ``object()`` has no useful name and yields None.
    """
    if source is None:
        return None
    if isinstance(source, str):
        name = source
    elif isinstance(source, ModuleType):
        name = source.__name__
    elif inspect.isclass(source):
        name = source.__qualname__
    else:
        name = type(source).__qualname__
    if not name or name == "object":
        return None
    return underscore(name.replace("::", ".")).lower()


def _ab_test_tags(ab_test: Mapping[str, Any] | None) -> dict[str, Any]:
    tags: dict[str, Any] = {}
    for test_name, group in (ab_test or {}).items():
        tags["ab_test_name"] = test_name
        tags["ab_test_group"] = group
    return tags


class Emitter:
    """Validate metric calls against a schema and forward them to a sink."""

    def __init__(
        self,
        source: Any = None,
        *,
        metric: str | None = None,
        tags: Mapping[str, Any] | None = None,
        ab_test: Mapping[str, Any] | None = None,
        sample_rate: float | None = None,
        schema: Namespace | SchemaBuilder | None = None,
        validation_mode: ValidationMode | str | None = None,
        sink: MetricSink | None = None,
        config: SchemaConfig | None = None,
        transformers: Mapping[str, Transformer] | None = None,
    ) -> None:
        self.config = config or get_default_config()
        self.metric = metric
        self.ab_test: dict[str, Any] = dict(ab_test or {})
        self.sample_rate = sample_rate if sample_rate is not None else self.config.sample_rate
        self.validation_mode = parse_validation_mode(
            validation_mode if validation_mode is not None else self.config.validation_mode
        )
        self._sink = sink

        self.tags: dict[str, Any] = {str(k): v for k, v in (tags or {}).items()}
        self.source = source_name(source)
        if self.source:
            self.tags["emitter"] = self.source

        if isinstance(schema, SchemaBuilder):
            transformers = transformers if transformers is not None else schema.transformers
            schema = schema.build()
        self.schema: Namespace | None = schema
        self.validator: Validator | None = (
            Validator(schema, transformers) if schema is not None else None
        )

    @property
    def _logger(self) -> Any:
        # Resolved per call; configure() may run after construction.
        return get_logger("statsd_schema.emitter")

    @property
    def sink(self) -> MetricSink:
        return self._sink if self._sink is not None else get_default_sink()

    def __repr__(self) -> str:
        return (
            f"Emitter(source={self.source!r}, metric={self.metric!r}, "
            f"validation_mode={self.validation_mode.value!r})"
        )

    # -- metric kinds -------------------------------------------------------

    def increment(self, name: str | None = None, value: float = 1, **opts: Any) -> bool:
        return self._emit("increment", name, value, **opts)

    def decrement(self, name: str | None = None, value: float = 1, **opts: Any) -> bool:
        return self._emit("decrement", name, value, **opts)

    def count(self, name: str | None = None, value: float = 1, **opts: Any) -> bool:
        return self._emit("count", name, value, **opts)

    def gauge(self, name: str | None = None, value: float = 0, **opts: Any) -> bool:
        return self._emit("gauge", name, value, **opts)

    def histogram(self, name: str | None = None, value: float = 0, **opts: Any) -> bool:
        return self._emit("histogram", name, value, **opts)

    def distribution(self, name: str | None = None, value: float = 0, **opts: Any) -> bool:
        return self._emit("distribution", name, value, **opts)

    def timing(self, name: str | None = None, value: float = 0, **opts: Any) -> bool:
        return self._emit("timing", name, value, **opts)

    def set(self, name: str | None = None, value: Any = None, **opts: Any) -> bool:
        return self._emit("set", name, value, **opts)

    def flush(self) -> None:
        self.sink.flush()

    # -- pipeline -----------------------------------------------------------

    def merged_tags(
        self,
        tags: Mapping[str, Any] | None = None,
        ab_test: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """global < instance < A/B test < call."""
        merged: dict[str, Any] = dict(self.config.global_tags)
        merged.update(self.tags)
        merged.update(_ab_test_tags(self.ab_test))
        merged.update(_ab_test_tags(ab_test))
        merged.update({str(k): v for k, v in (tags or {}).items()})
        return merged

    def _emit(
        self,
        operation: str,
        name: str | None,
        value: Any,
        *,
        tags: Mapping[str, Any] | None = None,
        sample_rate: float | None = None,
        ab_test: Mapping[str, Any] | None = None,
    ) -> bool:
        """Validate and forward one call. Returns whether the sink was called."""
        metric_name = name or self.metric
        if not metric_name:
            raise ValueError(
                f"{operation}() needs a metric name; pass one or set Emitter(metric=...)"
            )
        merged = self.merged_tags(tags, ab_test)

        if self.validator is not None and self.validation_mode is not ValidationMode.OFF:
            result = self.validator.check(operation, metric_name, merged)
            if not result.accepted and not self._apply_policy(result.error, operation):
                return False

        rate = sample_rate if sample_rate is not None else self.sample_rate
        kwargs: dict[str, Any] = {}
        if merged:
            kwargs["tags"] = merged
        if rate != DEFAULT_SAMPLE_RATE:
            kwargs["sample_rate"] = rate

        if self.config.debug:
            self._logger.info(
                "metric.emitted", operation=operation, metric=metric_name, value=value, **kwargs
            )
        _SINK_CALLS[operation](self.sink)(metric_name, value, **kwargs)
        return True

    def _apply_policy(self, error: SchemaError | None, operation: str) -> bool:
        """Decide what a violation means. Returns True to forward anyway."""
        if error is None:
            return True
        context = {
            "operation": operation,
            "metric": error.metric,
            "namespace": error.namespace,
            "error_kind": error.kind,
            "error": error.message,
        }
        if self.validation_mode is ValidationMode.WARN:
            self._logger.warning("schema.validation.warning", **context)
            return True
        if self.validation_mode is ValidationMode.DROP:
            self._logger.debug("schema.validation.dropped", **context)
            return False
        self._logger.error("schema.validation.error", **context)
        raise error
