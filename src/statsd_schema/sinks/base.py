"""Sink primitives: the MetricSink protocol and the SinkCall record."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

# Every sink method the emitter may call, one per metric kind.
SINK_METHODS: tuple[str, ...] = (
    "increment",
    "decrement",
    "gauge",
    "histogram",
    "distribution",
    "timing",
    "set",
)


@runtime_checkable
class MetricSink(Protocol):
    """Where validated metrics go (a StatsD client, a recorder, a file)."""

    def increment(
        self, name: str, value: float = 1, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def decrement(
        self, name: str, value: float = 1, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def gauge(
        self, name: str, value: float, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def histogram(
        self, name: str, value: float, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def distribution(
        self, name: str, value: float, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def timing(
        self, name: str, value: float, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def set(
        self, name: str, value: Any, *, tags: Mapping[str, Any] | None = None,
        sample_rate: float = 1.0,
    ) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class SinkCall:
    """One forwarded metric, as seen by the sink."""

    method: str
    name: str
    value: Any
    tags: dict[str, Any] = field(default_factory=dict)
    sample_rate: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "name": self.name,
            "value": self.value,
            "tags": dict(self.tags),
            "sample_rate": self.sample_rate,
        }


class RecordingSink(ABC):
    """Shared plumbing: every kind method funnels into ``record``."""

    @abstractmethod
    def record(self, call: SinkCall) -> None: ...

    def _call(
        self, method: str, name: str, value: Any, tags: Mapping[str, Any] | None,
        sample_rate: float,
    ) -> None:
        self.record(SinkCall(method, name, value, dict(tags or {}), sample_rate))

    def increment(self, name, value=1, *, tags=None, sample_rate=1.0) -> None:
        self._call("increment", name, value, tags, sample_rate)

    def decrement(self, name, value=1, *, tags=None, sample_rate=1.0) -> None:
        self._call("decrement", name, value, tags, sample_rate)

    def gauge(self, name, value, *, tags=None, sample_rate=1.0) -> None:
        self._call("gauge", name, value, tags, sample_rate)

    def histogram(self, name, value, *, tags=None, sample_rate=1.0) -> None:
        self._call("histogram", name, value, tags, sample_rate)

    def distribution(self, name, value, *, tags=None, sample_rate=1.0) -> None:
        self._call("distribution", name, value, tags, sample_rate)

    def timing(self, name, value, *, tags=None, sample_rate=1.0) -> None:
        self._call("timing", name, value, tags, sample_rate)

    def set(self, name, value, *, tags=None, sample_rate=1.0) -> None:
        self._call("set", name, value, tags, sample_rate)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass
