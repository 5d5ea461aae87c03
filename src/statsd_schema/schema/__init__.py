"""Schema model: tag/metric definitions, the namespace tree, and its builder."""

from statsd_schema.schema.builder import NamespaceBuilder, SchemaBuilder, schema
from statsd_schema.schema.loader import load_builder, load_file
from statsd_schema.schema.metrics import (
    METRIC_EXPANSIONS,
    VALID_METRIC_TYPES,
    MetricDefinition,
    MetricType,
    TagScope,
)
from statsd_schema.schema.namespace import ROOT_NAME, MetricInfo, Namespace
from statsd_schema.schema.tags import (
    AnyValue,
    Enumeration,
    FixedValue,
    Pattern,
    Predicate,
    TagDefinition,
    TagType,
    restriction_from,
)
from statsd_schema.schema.transformers import BUILTIN_TRANSFORMERS, default_transformers

__all__ = [
    # Tags
    "TagDefinition",
    "TagType",
    "AnyValue",
    "Enumeration",
    "Pattern",
    "Predicate",
    "FixedValue",
    "restriction_from",
    "BUILTIN_TRANSFORMERS",
    "default_transformers",
    # Metrics
    "MetricDefinition",
    "MetricType",
    "TagScope",
    "METRIC_EXPANSIONS",
    "VALID_METRIC_TYPES",
    # Tree
    "Namespace",
    "MetricInfo",
    "ROOT_NAME",
    # Construction
    "SchemaBuilder",
    "NamespaceBuilder",
    "schema",
    "load_file",
    "load_builder",
]
