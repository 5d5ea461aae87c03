"""Namespace tree: tags, metrics, and child namespaces.

A Namespace is immutable once built. add_tag / add_metric / add_namespace
return new nodes that share every untouched subtree with the original, so a
built schema can be read from any number of threads without locking.

Fully-qualified metric names are the dot-joined namespace path (without the
synthetic ``root``) followed by the local metric name:

    root ─ web ─ requests ─ total      →  "web.requests.total"
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from statsd_schema.errors import UnknownNamespaceError
from statsd_schema.schema.metrics import MetricDefinition, inheritance_chain
from statsd_schema.schema.tags import TagDefinition

ROOT_NAME = "root"


def _frozen(mapping: Mapping[Any, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType({str(k): v for k, v in (mapping or {}).items()})


@dataclass(frozen=True)
class MetricInfo:
    """A metric located in the tree: its definition and where it lives."""

    full_name: str
    definition: MetricDefinition
    namespace: Namespace
    namespace_path: tuple[str, ...]

    @property
    def namespace_name(self) -> str:
        return ".".join(self.namespace_path)


@dataclass(frozen=True, eq=False)
class Namespace:
    """A node in the schema tree."""

    name: str
    description: str | None = None
    tags: Mapping[str, TagDefinition] = field(default_factory=dict)
    metrics: Mapping[str, MetricDefinition] = field(default_factory=dict)
    namespaces: Mapping[str, Namespace] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", str(self.name))
        object.__setattr__(self, "tags", _frozen(self.tags))
        object.__setattr__(self, "metrics", _frozen(self.metrics))
        object.__setattr__(self, "namespaces", _frozen(self.namespaces))

    # -- identity -----------------------------------------------------------

    @property
    def is_root(self) -> bool:
        return self.name == ROOT_NAME

    def full_path(self, parent_path: tuple[str, ...] | list[str] = ()) -> tuple[str, ...]:
        return (*parent_path, self.name)

    # -- local lookup -------------------------------------------------------

    def find_metric(self, name: Any) -> MetricDefinition | None:
        return self.metrics.get(str(name))

    def find_tag(self, name: Any) -> TagDefinition | None:
        return self.tags.get(str(name))

    def find_namespace(self, name: Any) -> Namespace | None:
        return self.namespaces.get(str(name))

    def has_metric(self, name: Any) -> bool:
        return str(name) in self.metrics

    def has_tag(self, name: Any) -> bool:
        return str(name) in self.tags

    def has_namespace(self, name: Any) -> bool:
        return str(name) in self.namespaces

    @property
    def metric_names(self) -> list[str]:
        return list(self.metrics)

    @property
    def tag_names(self) -> list[str]:
        return list(self.tags)

    @property
    def namespace_names(self) -> list[str]:
        return list(self.namespaces)

    # -- persistent updates -------------------------------------------------

    def add_metric(self, metric: MetricDefinition) -> Namespace:
        return replace(self, metrics={**self.metrics, metric.name: metric})

    def add_tag(self, tag: TagDefinition) -> Namespace:
        return replace(self, tags={**self.tags, tag.name: tag})

    def add_namespace(self, namespace: Namespace) -> Namespace:
        return replace(self, namespaces={**self.namespaces, namespace.name: namespace})

    # -- path lookup --------------------------------------------------------

    def find_metric_by_path(self, path: str) -> MetricDefinition | None:
        """Resolve a dotted path ("api.requests") relative to this namespace."""
        head, _, rest = str(path).partition(".")
        if not rest:
            return self.find_metric(head)
        child = self.find_namespace(head)
        if child is None:
            return None
        return child.find_metric_by_path(rest)

    def find_namespace_by_path(self, path: str) -> Namespace | None:
        """Resolve a dotted namespace path; the empty path is this namespace."""
        if not path:
            return self
        head, _, rest = str(path).partition(".")
        child = self.find_namespace(head)
        if child is None or not rest:
            return child
        return child.find_namespace_by_path(rest)

    def require_namespace(self, path: str) -> Namespace:
        found = self.find_namespace_by_path(path)
        if found is None:
            raise UnknownNamespaceError(path)
        return found

    # -- enumeration --------------------------------------------------------

    def iter_metrics(self, path: tuple[str, ...] = ()) -> Iterator[MetricInfo]:
        current = (*path, self.name)
        visible = tuple(p for p in current if p != ROOT_NAME)
        for metric in self.metrics.values():
            yield MetricInfo(
                full_name=metric.full_name(visible),
                definition=metric,
                namespace=self,
                namespace_path=visible,
            )
        for child in self.namespaces.values():
            yield from child.iter_metrics(current)

    def all_metrics(self, path: tuple[str, ...] = ()) -> dict[str, MetricInfo]:
        """Every metric in this subtree keyed by fully-qualified name.

        Later entries overwrite earlier ones with the same name.
        """
        return {info.full_name: info for info in self.iter_metrics(path)}

    # -- tag visibility -----------------------------------------------------

    def effective_tags(
        self, parent_tags: Mapping[str, TagDefinition] | None = None
    ) -> dict[str, TagDefinition]:
        """Merge this namespace's tags over ``parent_tags`` (one level only)."""
        return {**(parent_tags or {}), **self.tags}

    def tag_chain(self, path: tuple[str, ...] | list[str] | str) -> dict[str, TagDefinition]:
        """Tags visible at ``path`` below this node, nearest declaration winning.

        Walks this node and every namespace on the path; a segment that does
        not exist ends the walk.
        """
        if isinstance(path, str):
            path = tuple(p for p in path.split(".") if p)
        visible = self.effective_tags()
        node: Namespace | None = self
        for segment in path:
            if segment == ROOT_NAME and node is not None and node.is_root:
                continue
            node = node.find_namespace(segment) if node is not None else None
            if node is None:
                break
            visible = node.effective_tags(visible)
        return visible

    # -- structural validation ----------------------------------------------

    def validate_tag_references(
        self,
        parent_tags: Mapping[str, TagDefinition] | None = None,
        resolver: Namespace | None = None,
        path: tuple[str, ...] = (),
    ) -> list[str]:
        """Collect human-readable schema defects for this subtree.

        A tag referenced by a metric is resolvable when it is declared in the
        metric's namespace or any ancestor namespace.
        """
        resolver = resolver or self
        visible = self.effective_tags(parent_tags)
        current = tuple(p for p in (*path, self.name) if p != ROOT_NAME)
        errors: list[str] = []

        for metric_name, metric in self.metrics.items():
            qualified = metric.full_name(current)
            for tag_name in sorted(metric.allowed_tags):
                if tag_name not in visible:
                    errors.append(f"Metric {qualified} references unknown tag: {tag_name}")
            for tag_name in sorted(metric.required_tags):
                if tag_name not in visible:
                    errors.append(f"Metric {qualified} requires unknown tag: {tag_name}")
            if metric.allowed_tags:
                for tag_name in sorted(metric.required_tags - metric.allowed_tags):
                    errors.append(
                        f"Metric {qualified} requires tag {tag_name} "
                        f"that is not in its allowed tags"
                    )
            if metric.no_tags and metric.required_tags:
                errors.append(f"Metric {qualified} accepts no tags but requires some")
            if metric.inherit_tags:
                chain, cyclic = inheritance_chain(metric, resolver)
                if cyclic:
                    errors.append(
                        f"Metric {qualified} has cyclic tag inheritance: "
                        + " -> ".join([qualified, *chain])
                    )
                elif resolver.find_metric_by_path(metric.inherit_tags) is None:
                    errors.append(
                        f"Metric {qualified} inherits tags from unknown metric: "
                        f"{metric.inherit_tags}"
                    )

        for child in self.namespaces.values():
            errors.extend(child.validate_tag_references(visible, resolver, (*path, self.name)))

        return errors

    # -- counts -------------------------------------------------------------

    def total_metrics_count(self) -> int:
        return len(self.metrics) + sum(n.total_metrics_count() for n in self.namespaces.values())

    def total_namespaces_count(self) -> int:
        return len(self.namespaces) + sum(
            n.total_namespaces_count() for n in self.namespaces.values()
        )
