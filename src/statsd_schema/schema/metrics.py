"""Metric definitions: kind, tag constraints, inheritance, metadata."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from statsd_schema.schema.tags import tag_names

if TYPE_CHECKING:
    from collections.abc import Sequence


class MetricType(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    DISTRIBUTION = "distribution"
    TIMING = "timing"
    SET = "set"


VALID_METRIC_TYPES: tuple[str, ...] = tuple(t.value for t in MetricType)

# Backend-side bundles: one declared metric becomes several time-series names.
METRIC_EXPANSIONS: dict[MetricType, tuple[str, ...]] = {
    MetricType.GAUGE: ("count", "min", "max", "sum", "avg"),
    MetricType.HISTOGRAM: ("count", "min", "max", "sum", "avg"),
    MetricType.DISTRIBUTION: (
        "count", "min", "max", "sum", "avg", "p50", "p75", "p90", "p95", "p99",
    ),
}


class TagScope(str, Enum):
    """How a metric restricts the tag names it accepts."""

    UNRESTRICTED = "unrestricted"  # no allowed list declared
    NONE = "none"  # explicitly accepts zero tags
    SOME = "some"  # only the declared allowed (and required) names


class MetricResolver(Protocol):
    """Anything that can resolve a dotted metric path (a Namespace tree, a Validator)."""

    def find_metric_by_path(self, path: str) -> MetricDefinition | None: ...


@dataclass(frozen=True)
class MetricDefinition:
    """A single metric definition.

    ``allowed_tags`` empty means any tag is accepted; ``no_tags=True``
    means the metric accepts none at all, inherited tags included.
    """

    name: str
    type: MetricType
    description: str | None = None
    allowed_tags: frozenset[str] = frozenset()
    required_tags: frozenset[str] = frozenset()
    inherit_tags: str | None = None
    units: str | None = None
    no_tags: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", str(self.name))
        try:
            object.__setattr__(self, "type", MetricType(self.type))
        except ValueError:
            raise ValueError(
                f"Invalid metric type {self.type!r} for metric {self.name!r}. "
                f"Valid types: {', '.join(VALID_METRIC_TYPES)}"
            ) from None
        object.__setattr__(self, "allowed_tags", tag_names(self.allowed_tags))
        object.__setattr__(self, "required_tags", tag_names(self.required_tags))

    # -- naming -------------------------------------------------------------

    def full_name(self, namespace_path: Sequence[str] = ()) -> str:
        if not namespace_path:
            return self.name
        return ".".join([*namespace_path, self.name])

    # -- tag checks ---------------------------------------------------------

    @property
    def tag_scope(self) -> TagScope:
        if self.no_tags:
            return TagScope.NONE
        if self.allowed_tags:
            return TagScope.SOME
        return TagScope.UNRESTRICTED

    def allows_tag(self, tag_name: Any) -> bool:
        if self.no_tags:
            return False
        return not self.allowed_tags or str(tag_name) in self.allowed_tags

    def requires_tag(self, tag_name: Any) -> bool:
        return str(tag_name) in self.required_tags

    def missing_required_tags(self, provided: Mapping[Any, Any] | Iterable[Any]) -> frozenset[str]:
        return self.required_tags - tag_names(provided)

    def invalid_tags(self, provided: Mapping[Any, Any] | Iterable[Any]) -> frozenset[str]:
        provided_names = tag_names(provided)
        if self.no_tags:
            return provided_names
        if not self.allowed_tags:
            return frozenset()
        return provided_names - self.allowed_tags

    def valid_tags(self, provided: Mapping[Any, Any] | Iterable[Any]) -> bool:
        return not self.missing_required_tags(provided) and not self.invalid_tags(provided)

    # -- inheritance --------------------------------------------------------

    def effective_allowed_tags(self, resolver: MetricResolver | None = None) -> frozenset[str]:
        return self._effective("allowed_tags", resolver, frozenset())

    def effective_required_tags(self, resolver: MetricResolver | None = None) -> frozenset[str]:
        return self._effective("required_tags", resolver, frozenset())

    def _effective(
        self,
        attr: str,
        resolver: MetricResolver | None,
        visited: frozenset[str],
    ) -> frozenset[str]:
        if self.no_tags:
            return frozenset()
        own: frozenset[str] = getattr(self, attr)
        if not self.inherit_tags or resolver is None or self.inherit_tags in visited:
            return own
        parent = resolver.find_metric_by_path(self.inherit_tags)
        if parent is None:
            return own
        inherited = parent._effective(attr, resolver, visited | {self.inherit_tags})
        return inherited | own

    # -- kind predicates ----------------------------------------------------

    def is_counter(self) -> bool:
        return self.type is MetricType.COUNTER

    def is_gauge(self) -> bool:
        return self.type is MetricType.GAUGE

    def is_histogram(self) -> bool:
        return self.type is MetricType.HISTOGRAM

    def is_distribution(self) -> bool:
        return self.type is MetricType.DISTRIBUTION

    def is_timing(self) -> bool:
        return self.type is MetricType.TIMING

    def is_set(self) -> bool:
        return self.type is MetricType.SET

    def is_timing_metric(self) -> bool:
        return self.type in (MetricType.TIMING, MetricType.DISTRIBUTION, MetricType.HISTOGRAM)

    def expands(self) -> bool:
        return self.type in METRIC_EXPANSIONS

    def expanded_names(self, full_name: str | None = None) -> list[str]:
        """Every time-series name this metric produces on the backend."""
        base = full_name or self.name
        suffixes = METRIC_EXPANSIONS.get(self.type)
        if not suffixes:
            return [base]
        return [f"{base}.{suffix}" for suffix in suffixes]

    def replace(self, **changes: Any) -> MetricDefinition:
        return replace(self, **changes)


def inheritance_chain(
    metric: MetricDefinition, resolver: MetricResolver
) -> tuple[list[str], bool]:
    """Follow ``inherit_tags`` links from ``metric``.

    Returns the visited paths and whether the chain loops back on itself.
    """
    seen: list[str] = []
    current = metric
    while current.inherit_tags:
        path = current.inherit_tags
        if path in seen:
            return seen, True
        seen.append(path)
        parent = resolver.find_metric_by_path(path)
        if parent is None:
            break
        current = parent
    return seen, False

