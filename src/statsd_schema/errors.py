"""Schema error taxonomy.

Every error carries enough context (namespace path, metric name, offending
tag) to render an actionable message. Runtime violations are raised by the
Validator and then routed through the emitter's validation policy;
construction-time defects are collected and only raised in aggregate by
SchemaBuilder.validate_strict().
"""

from __future__ import annotations

from collections.abc import Iterable


class SchemaError(ValueError):
    """Base class for every schema violation."""

    kind = "schema_error"

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        metric: str | None = None,
        tag: str | None = None,
    ) -> None:
        super().__init__(message)
        self.namespace = namespace
        self.metric = metric
        self.tag = tag

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def to_dict(self) -> dict[str, str | None]:
        return {
            "kind": self.kind,
            "message": self.message,
            "namespace": self.namespace,
            "metric": self.metric,
            "tag": self.tag,
        }


# ---------------------------------------------------------------------------
# Runtime (call-site) violations
# ---------------------------------------------------------------------------


class UnknownMetricError(SchemaError):
    kind = "unknown_metric"

    def __init__(
        self,
        message: str,
        *,
        metric: str | None = None,
        suggestions: Iterable[str] = (),
    ) -> None:
        super().__init__(message, metric=metric)
        self.suggestions = tuple(suggestions)


class InvalidMetricTypeError(SchemaError):
    kind = "invalid_metric_type"

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        metric: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message, namespace=namespace, metric=metric)
        self.expected = expected
        self.actual = actual


class MissingRequiredTagError(SchemaError):
    kind = "missing_required_tag"

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        metric: str | None = None,
        missing: Iterable[str] = (),
    ) -> None:
        missing = tuple(missing)
        super().__init__(
            message, namespace=namespace, metric=metric, tag=missing[0] if missing else None
        )
        self.missing = missing


class InvalidTagError(SchemaError):
    kind = "invalid_tag"

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        metric: str | None = None,
        invalid: Iterable[str] = (),
    ) -> None:
        invalid = tuple(invalid)
        super().__init__(
            message, namespace=namespace, metric=metric, tag=invalid[0] if invalid else None
        )
        self.invalid = invalid


class InvalidTagValueError(SchemaError):
    kind = "invalid_tag_value"

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        metric: str | None = None,
        tag: str | None = None,
        value: object = None,
    ) -> None:
        super().__init__(message, namespace=namespace, metric=metric, tag=tag)
        self.value = value


# ---------------------------------------------------------------------------
# Construction-time defects
# ---------------------------------------------------------------------------


class SchemaStructuralDefect(SchemaError):
    kind = "schema_structural_defect"


class DuplicateMetricDefinitionError(SchemaError):
    kind = "duplicate_metric_definition"


class UnknownNamespaceError(SchemaError):
    kind = "unknown_namespace"

    def __init__(self, namespace: str) -> None:
        super().__init__(
            f"Unknown namespace '{namespace}'. Please define it in your schema first.",
            namespace=namespace,
        )


class SchemaValidationError(SchemaError):
    """Aggregate of every structural defect found in a schema."""

    kind = "schema_validation_failed"

    def __init__(self, errors: Iterable[str], defects: Iterable[SchemaError] = ()) -> None:
        self.errors = list(errors)
        self.defects = list(defects)
        super().__init__("Schema validation failed: " + ", ".join(self.errors))


class SchemaLoadError(SchemaError):
    """A schema source file could not be turned into a Namespace tree."""

    kind = "schema_load_failed"
