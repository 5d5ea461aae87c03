"""Cardinality estimation: how many time-series a schema can produce.

For every fully-qualified metric the Analyzer works out

    expanded names   gauge/histogram fan out to 5 names, distribution to 10
    effective tags   inherited tags + own declared tags (or every tag the
                     namespace chain can see when the metric is unrestricted)
    combinations     product of per-tag value estimates x expanded names

and sums them into an AnalysisResult. The result is plain data; see
statsd_schema.formatters for text/JSON/YAML rendering.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

from statsd_schema.logging import get_logger
from statsd_schema.schema.metrics import METRIC_EXPANSIONS, MetricDefinition
from statsd_schema.schema.namespace import MetricInfo, Namespace
from statsd_schema.schema.tags import TagDefinition

__all__ = ["Analyzer", "AnalysisResult", "MetricAnalysis", "METRIC_EXPANSIONS", "analyze"]


@dataclass(frozen=True)
class MetricAnalysis:
    """Estimate for a single declared metric."""

    metric_name: str
    metric_type: str
    expanded_names: list[str]
    unique_tags: int
    unique_tag_values: int
    total_combinations: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnalysisResult:
    """Totals plus the per-metric breakdown, in schema order."""

    total_unique_metrics: int
    total_possible_custom_metrics: int
    metrics_analysis: list[MetricAnalysis] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_unique_metrics": self.total_unique_metrics,
            "total_possible_custom_metrics": self.total_possible_custom_metrics,
            "metrics_analysis": [m.to_dict() for m in self.metrics_analysis],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisResult:
        return cls(
            total_unique_metrics=int(data["total_unique_metrics"]),
            total_possible_custom_metrics=int(data["total_possible_custom_metrics"]),
            metrics_analysis=[MetricAnalysis(**m) for m in data.get("metrics_analysis", [])],
        )

    def find(self, metric_name: str) -> MetricAnalysis | None:
        for analysis in self.metrics_analysis:
            if analysis.metric_name == metric_name:
                return analysis
        return None


@dataclass(frozen=True)
class _Located:
    schema: Namespace
    info: MetricInfo


class Analyzer:
    """Analyze one or more schema trees.

    Metrics from every schema are analyzed in order. An ``inherit_tags``
    reference is resolved against the first schema that defines the target.
    """

    def __init__(self, schemas: Namespace | Iterable[Namespace]) -> None:
        if isinstance(schemas, Namespace):
            schemas = [schemas]
        self.schemas: list[Namespace] = list(schemas)
        self._logger = get_logger("statsd_schema.analyzer")

    def analyze(self) -> AnalysisResult:
        located = self._collect()
        index: dict[str, _Located] = {}
        for item in located:
            index.setdefault(item.info.full_name, item)

        analyses = [self._analyze_metric(item, index) for item in located]
        result = AnalysisResult(
            total_unique_metrics=sum(len(a.expanded_names) for a in analyses),
            total_possible_custom_metrics=sum(a.total_combinations for a in analyses),
            metrics_analysis=analyses,
        )
        self._logger.info(
            "analysis.completed",
            schemas=len(self.schemas),
            metrics=len(analyses),
            total_unique_metrics=result.total_unique_metrics,
            total_possible_custom_metrics=result.total_possible_custom_metrics,
        )
        return result

    # -- internals ----------------------------------------------------------

    def _collect(self) -> list[_Located]:
        return [
            _Located(schema, info)
            for schema in self.schemas
            for info in schema.all_metrics().values()
        ]

    def _analyze_metric(self, item: _Located, index: dict[str, _Located]) -> MetricAnalysis:
        definition = item.info.definition
        expanded = definition.expanded_names(item.info.full_name)
        tags = self._available_tags(item, index)
        counts = [t.estimated_value_count for t in tags.values()]
        return MetricAnalysis(
            metric_name=item.info.full_name,
            metric_type=definition.type.value,
            expanded_names=expanded,
            unique_tags=len(tags),
            unique_tag_values=sum(counts),
            total_combinations=math.prod(counts) * len(expanded),
        )

    def _available_tags(
        self, item: _Located, index: dict[str, _Located]
    ) -> dict[str, TagDefinition]:
        definition = item.info.definition
        if definition.no_tags:
            return {}
        visible = _chain_tags(item)

        available: dict[str, TagDefinition] = {}
        if definition.inherit_tags:
            available.update(
                self._inherited_tags(definition.inherit_tags, index, frozenset({item.info.full_name}))
            )

        declared = definition.allowed_tags | definition.required_tags
        if declared:
            for name in sorted(declared):
                if name in visible:
                    available[name] = visible[name]
        else:
            for name, tag in visible.items():
                available.setdefault(name, tag)
        return available

    def _inherited_tags(
        self, path: str, index: dict[str, _Located], visited: frozenset[str]
    ) -> dict[str, TagDefinition]:
        if path in visited:
            return {}
        parent = index.get(path)
        if parent is None:
            return {}

        inherited: dict[str, TagDefinition] = {}
        parent_def = parent.info.definition
        if parent_def.inherit_tags:
            inherited.update(self._inherited_tags(parent_def.inherit_tags, index, visited | {path}))
        inherited.update(_restricted(parent_def, _chain_tags(parent)))
        return inherited


def _chain_tags(item: _Located) -> dict[str, TagDefinition]:
    """Tags visible to the metric's namespace, walking down from the schema node."""
    path = item.info.namespace_path
    if not item.schema.is_root and path[:1] == (item.schema.name,):
        path = path[1:]
    return item.schema.tag_chain(path)


def _restricted(
    definition: MetricDefinition, visible: dict[str, TagDefinition]
) -> dict[str, TagDefinition]:
    """The tags a metric itself can carry, from what its namespace chain sees."""
    if definition.no_tags:
        return {}
    declared = definition.allowed_tags | definition.required_tags
    if not declared:
        return dict(visible)
    return {name: tag for name, tag in visible.items() if name in declared}


def analyze(schemas: Namespace | Iterable[Namespace]) -> AnalysisResult:
    """Shorthand for ``Analyzer(schemas).analyze()``."""
    return Analyzer(schemas).analyze()
