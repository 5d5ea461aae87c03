"""statsd-schema: declare, validate, and cost-estimate StatsD metrics.

    from statsd_schema import Emitter, SchemaBuilder

    builder = SchemaBuilder()
    with builder.namespace("web") as web:
        web.tag("environment", ["production", "staging"])
        with web.namespace("requests") as requests:
            requests.counter("total", tags={"required": ["environment"]})

    emitter = Emitter("CheckoutController", schema=builder)
    emitter.increment("web.requests.total", tags={"environment": "production"})
"""

from statsd_schema.analyzer import AnalysisResult, Analyzer, MetricAnalysis, analyze
from statsd_schema.config import SchemaConfig, ValidationMode
from statsd_schema.emitter import Emitter, configure, get_default_sink, reset
from statsd_schema.errors import (
    DuplicateMetricDefinitionError,
    InvalidMetricTypeError,
    InvalidTagError,
    InvalidTagValueError,
    MissingRequiredTagError,
    SchemaError,
    SchemaLoadError,
    SchemaStructuralDefect,
    SchemaValidationError,
    UnknownMetricError,
    UnknownNamespaceError,
)
from statsd_schema.schema import (
    MetricDefinition,
    MetricType,
    Namespace,
    NamespaceBuilder,
    SchemaBuilder,
    TagDefinition,
    TagType,
    load_file,
    schema,
)
from statsd_schema.validator import ValidationResult, Validator

__version__ = "0.1.0"

__all__ = [
    # Schema
    "SchemaBuilder",
    "NamespaceBuilder",
    "Namespace",
    "MetricDefinition",
    "MetricType",
    "TagDefinition",
    "TagType",
    "schema",
    "load_file",
    # Runtime
    "Emitter",
    "Validator",
    "ValidationResult",
    "ValidationMode",
    "SchemaConfig",
    "configure",
    "get_default_sink",
    "reset",
    # Analysis
    "Analyzer",
    "AnalysisResult",
    "MetricAnalysis",
    "analyze",
    # Errors
    "SchemaError",
    "UnknownMetricError",
    "InvalidMetricTypeError",
    "MissingRequiredTagError",
    "InvalidTagError",
    "InvalidTagValueError",
    "SchemaStructuralDefect",
    "DuplicateMetricDefinitionError",
    "UnknownNamespaceError",
    "SchemaValidationError",
    "SchemaLoadError",
]
