"""SchemaBuilder: declarative construction of an immutable Namespace tree.

Nested namespaces are opened with context managers; leaving a ``with``
block freezes that namespace and attaches it to its parent:

    builder = SchemaBuilder()
    builder.transformer("underscore", underscore)

    with builder.namespace("web") as web:
        web.tag("environment", values=["production", "staging", "development"])
        web.tag("service", values=["api", "web", "worker"])

        with web.namespace("requests") as requests:
            requests.counter(
                "total",
                description="Total HTTP requests",
                tags={"required": ["environment", "service"], "allowed": ["region"]},
            )
            requests.distribution("duration", inherit_tags="web.requests.total")

    schema = builder.build()

Construction never fails on a structural defect. Defects (unknown tag
references, broken or cyclic inheritance, redefined metrics) are returned
by validate() and raised in aggregate only by validate_strict().
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from statsd_schema.errors import (
    DuplicateMetricDefinitionError,
    SchemaError,
    SchemaLoadError,
    SchemaStructuralDefect,
    SchemaValidationError,
)
from statsd_schema.logging import get_logger
from statsd_schema.schema.metrics import MetricDefinition, MetricType
from statsd_schema.schema.namespace import ROOT_NAME, Namespace
from statsd_schema.schema.tags import Pattern, TagDefinition, TagType
from statsd_schema.schema.transformers import BUILTIN_TRANSFORMERS, Transformer

TagsOption = Mapping[str, Iterable[Any]] | Iterable[Any] | str | bool | None


def parse_tags_option(tags: TagsOption) -> tuple[frozenset[str], frozenset[str], bool]:
    """Normalise a metric's ``tags`` option to (allowed, required, no_tags).

    - ``None``: unrestricted
    - ``False``: the metric accepts no tags
    - a mapping with ``allowed`` / ``required`` lists
    - a string or list: shorthand for ``allowed``
    """
    if tags is None or tags is True:
        return frozenset(), frozenset(), False
    if tags is False:
        return frozenset(), frozenset(), True
    if isinstance(tags, Mapping):
        unknown = set(tags) - {"allowed", "required"}
        if unknown:
            raise ValueError(
                f"Unknown tags option(s): {sorted(unknown)}. Use 'allowed' and/or 'required'."
            )
        return (
            frozenset(str(t) for t in _as_list(tags.get("allowed"))),
            frozenset(str(t) for t in _as_list(tags.get("required"))),
            False,
        )
    return frozenset(str(t) for t in _as_list(tags)), frozenset(), False


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class NamespaceBuilder:
    """Accumulates one namespace's tags, metrics, and children."""

    def __init__(
        self,
        name: str,
        description: str | None = None,
        *,
        owner: SchemaBuilder,
        path: tuple[str, ...] = (),
    ) -> None:
        self.name = str(name)
        self.description = description
        self.path = (*path, self.name)
        self._owner = owner
        self._tags: dict[str, TagDefinition] = {}
        self._metrics: dict[str, MetricDefinition] = {}
        self._namespaces: dict[str, Namespace] = {}
        self._prefix: str | None = None

    @property
    def transformers(self) -> Mapping[str, Transformer]:
        return self._owner.transformers

    def describe(self, text: str) -> None:
        self.description = text

    # -- tags ---------------------------------------------------------------

    def tag(
        self,
        name: Any,
        values: Any = None,
        *,
        type: TagType | str = TagType.STRING,
        transform: Iterable[str] | str = (),
        validate: Callable[[Any], Any] | None = None,
        description: str | None = None,
    ) -> TagDefinition:
        tag_def = TagDefinition(
            name=str(name),
            values=values,
            type=type,
            transform=transform,
            validate=validate,
            description=description,
        )
        self._tags[tag_def.name] = tag_def
        return tag_def

    # -- metrics ------------------------------------------------------------

    def metric(
        self,
        name: Any,
        type: MetricType | str,
        *,
        description: str | None = None,
        tags: TagsOption = None,
        inherit_tags: str | None = None,
        units: str | None = None,
    ) -> MetricDefinition:
        allowed, required, no_tags = parse_tags_option(tags)
        metric_name = f"{self._prefix}_{name}" if self._prefix else str(name)
        metric_def = MetricDefinition(
            name=metric_name,
            type=type,
            description=description,
            allowed_tags=allowed,
            required_tags=required,
            inherit_tags=inherit_tags,
            units=units,
            no_tags=no_tags,
        )
        if metric_name in self._metrics:
            self._owner._record_duplicate(".".join(self._visible_path()), metric_name)
        self._metrics[metric_name] = metric_def
        return metric_def

    def counter(self, name: Any, **options: Any) -> MetricDefinition:
        return self.metric(name, MetricType.COUNTER, **options)

    def gauge(self, name: Any, **options: Any) -> MetricDefinition:
        return self.metric(name, MetricType.GAUGE, **options)

    def histogram(self, name: Any, **options: Any) -> MetricDefinition:
        return self.metric(name, MetricType.HISTOGRAM, **options)

    def distribution(self, name: Any, **options: Any) -> MetricDefinition:
        return self.metric(name, MetricType.DISTRIBUTION, **options)

    def timing(self, name: Any, **options: Any) -> MetricDefinition:
        return self.metric(name, MetricType.TIMING, **options)

    def set(self, name: Any, **options: Any) -> MetricDefinition:
        return self.metric(name, MetricType.SET, **options)

    @contextmanager
    def prefixed(self, prefix: str) -> Iterator[NamespaceBuilder]:
        """Prefix metric names defined inside the block with ``prefix_``."""
        previous = self._prefix
        self._prefix = f"{previous}_{prefix}" if previous else str(prefix)
        try:
            yield self
        finally:
            self._prefix = previous

    # -- nesting ------------------------------------------------------------

    @contextmanager
    def namespace(self, name: Any, description: str | None = None) -> Iterator[NamespaceBuilder]:
        child = NamespaceBuilder(name, description, owner=self._owner, path=self.path)
        existing = self._namespaces.get(child.name)
        if existing is not None:
            child._reopen(existing)
        yield child
        self._namespaces[child.name] = child.build()

    def _reopen(self, existing: Namespace) -> None:
        """Continue a namespace declared earlier; redefinitions are still recorded."""
        self.description = self.description or existing.description
        self._tags.update(existing.tags)
        self._metrics.update(existing.metrics)
        self._namespaces.update(existing.namespaces)

    def add_namespace(self, namespace: Namespace) -> None:
        existing = self._namespaces.get(namespace.name)
        if existing is not None:
            self._owner._record_replaced(existing, namespace, self._visible_path())
        self._namespaces[namespace.name] = namespace

    def _visible_path(self) -> tuple[str, ...]:
        return tuple(p for p in self.path if p != ROOT_NAME)

    def build(self) -> Namespace:
        return Namespace(
            name=self.name,
            description=self.description,
            tags=self._tags,
            metrics=self._metrics,
            namespaces=self._namespaces,
        )


class SchemaBuilder:
    """Builds the root Namespace of a schema."""

    def __init__(self, transformers: Mapping[str, Transformer] | None = None) -> None:
        self._transformers: dict[str, Transformer] = dict(BUILTIN_TRANSFORMERS)
        self._transformers.update(transformers or {})
        self._root = NamespaceBuilder(ROOT_NAME, owner=self)
        self.duplicates: list[DuplicateMetricDefinitionError] = []

    @property
    def transformers(self) -> Mapping[str, Transformer]:
        return self._transformers

    @property
    def root_namespace(self) -> Namespace:
        return self._root.build()

    def transformer(self, name: str, fn: Transformer | None = None) -> Any:
        """Register a named transformer. Usable directly or as a decorator."""
        if fn is not None:
            self._transformers[str(name)] = fn
            return fn

        def decorator(func: Transformer) -> Transformer:
            self._transformers[str(name)] = func
            return func

        return decorator

    def define_transformers(self, **fns: Transformer) -> None:
        self._transformers.update(fns)

    @contextmanager
    def namespace(self, name: Any, description: str | None = None) -> Iterator[NamespaceBuilder]:
        with self._root.namespace(name, description) as child:
            yield child

    def add_namespace(self, namespace: Namespace) -> None:
        self._root.add_namespace(namespace)

    def build(self) -> Namespace:
        return self._root.build()

    # -- validation ---------------------------------------------------------

    def validate(self) -> list[str]:
        """Structural defects plus redefinition notices, in that order."""
        return self.build().validate_tag_references() + [d.message for d in self.duplicates]

    def validate_strict(self) -> None:
        structural = self.build().validate_tag_references()
        if not structural and not self.duplicates:
            return
        defects: list[SchemaError] = [SchemaStructuralDefect(msg) for msg in structural]
        defects.extend(self.duplicates)
        raise SchemaValidationError([d.message for d in defects], defects)

    def _record_duplicate(self, namespace: str, metric_name: str) -> None:
        qualified = f"{namespace}.{metric_name}" if namespace else metric_name
        notice = DuplicateMetricDefinitionError(
            f"Metric '{qualified}' is already defined",
            namespace=namespace or None,
            metric=qualified,
        )
        self.duplicates.append(notice)
        get_logger("statsd_schema.builder").warning(
            "schema.duplicate_metric", metric=qualified, namespace=namespace
        )

    def _record_replaced(
        self, existing: Namespace, replacement: Namespace, parent_path: tuple[str, ...]
    ) -> None:
        old = existing.all_metrics(parent_path)
        new = replacement.all_metrics(parent_path)
        for full_name in old:
            if full_name in new:
                info = new[full_name]
                self._record_duplicate(info.namespace_name, info.definition.name)

    # -- declarative input --------------------------------------------------

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        transformers: Mapping[str, Transformer] | None = None,
    ) -> SchemaBuilder:
        """Build from plain data (e.g. parsed YAML).

        Shape::

            transformers: [downcase, underscore]      # optional, must be known
            namespaces:
              web:
                description: ...
                tags:
                  environment: {values: [production, staging]}
                  request_id: {pattern: "^[0-9a-f]{8}$"}
                  status_code: {type: integer}
                metrics:
                  page_views: {type: counter, tags: {required: [environment]}}
                namespaces: {...}
        """
        if not isinstance(data, Mapping):
            raise SchemaLoadError(f"Schema must be a mapping, got {type(data).__name__}")
        builder = cls(transformers)
        for name in _as_list(data.get("transformers")):
            if name not in builder.transformers:
                raise SchemaLoadError(
                    f"Unknown transformer {name!r}. Available: {sorted(builder.transformers)}"
                )
        namespaces = data.get("namespaces") or {}
        if not isinstance(namespaces, Mapping):
            raise SchemaLoadError("'namespaces' must be a mapping of name -> namespace")
        for ns_name, ns_data in namespaces.items():
            with builder.namespace(ns_name) as ns:
                _populate(ns, ns_data or {})
        return builder


def _populate(ns: NamespaceBuilder, data: Mapping[str, Any]) -> None:
    where = ".".join(ns.path[1:])
    if not isinstance(data, Mapping):
        raise SchemaLoadError(f"Namespace {where!r} must be a mapping", namespace=where)

    if data.get("description"):
        ns.describe(str(data["description"]))

    for tag_name, tag_data in (data.get("tags") or {}).items():
        tag_data = tag_data or {}
        if not isinstance(tag_data, Mapping):
            raise SchemaLoadError(
                f"Tag {tag_name!r} in {where!r} must be a mapping", namespace=where, tag=tag_name
            )
        values: Any = tag_data.get("values")
        if "pattern" in tag_data:
            try:
                values = Pattern(re.compile(str(tag_data["pattern"])))
            except re.error as e:
                raise SchemaLoadError(
                    f"Tag {tag_name!r} in {where!r} has an invalid pattern: {e}",
                    namespace=where,
                    tag=tag_name,
                ) from e
        try:
            ns.tag(
                tag_name,
                values,
                type=tag_data.get("type", "string"),
                transform=_as_list(tag_data.get("transform")),
                description=tag_data.get("description"),
            )
        except ValueError as e:
            raise SchemaLoadError(
                f"Tag {tag_name!r} in {where!r}: {e}", namespace=where, tag=tag_name
            ) from e

    for metric_name, metric_data in (data.get("metrics") or {}).items():
        if not isinstance(metric_data, Mapping) or "type" not in metric_data:
            raise SchemaLoadError(
                f"Metric {metric_name!r} in {where!r} must be a mapping with a 'type'",
                namespace=where,
                metric=metric_name,
            )
        try:
            ns.metric(
                metric_name,
                metric_data["type"],
                description=metric_data.get("description"),
                tags=metric_data.get("tags"),
                inherit_tags=metric_data.get("inherit_tags"),
                units=metric_data.get("units"),
            )
        except ValueError as e:
            raise SchemaLoadError(
                f"Metric {metric_name!r} in {where!r}: {e}", namespace=where, metric=metric_name
            ) from e

    for child_name, child_data in (data.get("namespaces") or {}).items():
        with ns.namespace(child_name) as child:
            _populate(child, child_data or {})


def schema(definition: Callable[[SchemaBuilder], Any]) -> Namespace:
    """Build a schema from a function that receives the builder.

    Usable as a decorator::

        @schema
        def metrics(b):
            with b.namespace("web") as web:
                web.counter("page_views")
    """
    builder = SchemaBuilder()
    definition(builder)
    return builder.build()
