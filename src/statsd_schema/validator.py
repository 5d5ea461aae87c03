"""Per-call validation of a metric emission against a schema.

Checks run in a fixed order and the first failure wins:

    METRIC_LOOKUP       the name exists in the schema (else suggestions)
    TYPE_CHECK          the call-site operation matches the declared kind
    TAG_PRESENCE_CHECK  required tags present, no tags outside the allowed set
    TAG_VALUE_CHECK     each tag value passes its TagDefinition

The Validator holds no mutable state after construction; one instance can
serve any number of threads.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from statsd_schema.errors import (
    InvalidMetricTypeError,
    InvalidTagError,
    InvalidTagValueError,
    MissingRequiredTagError,
    SchemaError,
    UnknownMetricError,
)
from statsd_schema.schema.metrics import MetricDefinition, MetricType
from statsd_schema.schema.namespace import MetricInfo, Namespace
from statsd_schema.schema.tags import AnyValue, TagDefinition, TagType
from statsd_schema.schema.transformers import BUILTIN_TRANSFORMERS, Transformer

# Tags injected by the emitter itself; never required, never restricted.
FRAMEWORK_TAGS = frozenset({"emitter", "ab_test_name", "ab_test_group"})

MAX_SUGGESTIONS = 3
MAX_LISTED_METRICS = 5
SUGGESTION_DISTANCE = 2

OPERATION_KINDS: dict[str, MetricType] = {
    "increment": MetricType.COUNTER,
    "decrement": MetricType.COUNTER,
    "count": MetricType.COUNTER,
    "gauge": MetricType.GAUGE,
    "histogram": MetricType.HISTOGRAM,
    "distribution": MetricType.DISTRIBUTION,
    "timing": MetricType.TIMING,
    "set": MetricType.SET,
}


class ValidationState(str, Enum):
    METRIC_LOOKUP = "metric_lookup"
    TYPE_CHECK = "type_check"
    TAG_PRESENCE_CHECK = "tag_presence_check"
    TAG_VALUE_CHECK = "tag_value_check"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one check: accepted, or the first error and where it hit."""

    accepted: bool
    error: SchemaError | None = None
    state: ValidationState = ValidationState.ACCEPTED

    def __bool__(self) -> bool:
        return self.accepted

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def operation_kind(operation: str) -> MetricType | str:
    """Map a call-site operation (``increment``) to a metric kind (counter).

    Unknown operations map to themselves so the type check can report them.
    """
    return OPERATION_KINDS.get(str(operation), str(operation))


def levenshtein(a: str, b: str) -> int:
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def suggest(name: str, candidates: list[str], limit: int = MAX_SUGGESTIONS) -> list[str]:
    """Known names that contain ``name``, are contained by it, or are a small edit away."""
    matches = [
        candidate
        for candidate in candidates
        if name in candidate
        or candidate in name
        or levenshtein(name, candidate) <= SUGGESTION_DISTANCE
    ]
    return matches[:limit]


class Validator:
    """Validate metric emissions against one schema tree.

    ``transformers`` are the named value transforms TagDefinitions refer to;
    the built-ins are used when none are given. ``schema`` may be the root or
    any subtree; metric names and ``inherit_tags`` paths are read as
    fully-qualified either way.
    """

    def __init__(
        self,
        schema: Namespace,
        transformers: Mapping[str, Transformer] | None = None,
    ) -> None:
        self.schema = schema
        self.transformers: Mapping[str, Transformer] = (
            transformers if transformers is not None else BUILTIN_TRANSFORMERS
        )
        self._metrics: dict[str, MetricInfo] = schema.all_metrics()
        self._names = list(self._metrics)
        self._visible: dict[tuple[str, ...], dict[str, TagDefinition]] = {
            info.namespace_path: self._tag_chain(info.namespace_path)
            for info in self._metrics.values()
        }

    @property
    def metric_names(self) -> list[str]:
        return list(self._names)

    def check(
        self, operation: str, name: str, tags: Mapping[Any, Any] | None = None
    ) -> ValidationResult:
        """Run every check; never raises for schema violations.

        A custom validator or transformer that raises counts as a rejected value.
        """
        tags = {_key(k): v for k, v in (tags or {}).items()}
        state = ValidationState.METRIC_LOOKUP
        try:
            info = self._lookup(str(name))
            state = ValidationState.TYPE_CHECK
            self._check_type(operation, info)
            state = ValidationState.TAG_PRESENCE_CHECK
            self._check_presence(info, tags)
            state = ValidationState.TAG_VALUE_CHECK
            self._check_values(info, tags)
        except SchemaError as e:
            return ValidationResult(False, e, state)
        return ValidationResult(True)

    def validate(self, operation: str, name: str, tags: Mapping[Any, Any] | None = None) -> None:
        """Like check(), but raise the first violation."""
        self.check(operation, name, tags).raise_for_error()

    def visible_tags(self, info: MetricInfo) -> dict[str, TagDefinition]:
        visible = self._visible.get(info.namespace_path)
        if visible is None:
            visible = self._tag_chain(info.namespace_path)
        return visible

    def find_metric_by_path(self, path: str) -> MetricDefinition | None:
        """Resolve an ``inherit_tags`` path against the fully-qualified index."""
        info = self._metrics.get(str(path))
        return info.definition if info is not None else None

    def _tag_chain(self, path: tuple[str, ...]) -> dict[str, TagDefinition]:
        if not self.schema.is_root and path[:1] == (self.schema.name,):
            path = path[1:]
        return self.schema.tag_chain(path)

    # -- states -------------------------------------------------------------

    def _lookup(self, name: str) -> MetricInfo:
        info = self._metrics.get(name)
        if info is not None:
            return info

        suggestions = suggest(name, self._names)
        message = f"Unknown metric '{name}'"
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"
        message += f". Available metrics: {', '.join(self._names[:MAX_LISTED_METRICS])}"
        if len(self._names) > MAX_LISTED_METRICS:
            message += ", ..."
        raise UnknownMetricError(message, metric=name, suggestions=suggestions)

    def _check_type(self, operation: str, info: MetricInfo) -> None:
        expected = info.definition.type
        actual = operation_kind(operation)
        if actual == expected:
            return
        actual_name = actual.value if isinstance(actual, MetricType) else actual
        raise InvalidMetricTypeError(
            f"Invalid metric type for '{info.full_name}'. "
            f"Expected '{expected.value}', got '{actual_name}'",
            namespace=info.namespace_name,
            metric=info.full_name,
            expected=expected.value,
            actual=actual_name,
        )

    def _check_presence(self, info: MetricInfo, tags: dict[str, Any]) -> None:
        definition = info.definition
        user_tags = {k for k in tags if k not in FRAMEWORK_TAGS}

        required = definition.effective_required_tags(self) - FRAMEWORK_TAGS
        missing = sorted(required - user_tags)
        if missing:
            raise MissingRequiredTagError(
                f"Missing required tags for metric '{info.full_name}': {', '.join(missing)}. "
                f"Required tags: {', '.join(sorted(required))}",
                namespace=info.namespace_name,
                metric=info.full_name,
                missing=missing,
            )

        if definition.no_tags:
            invalid = sorted(user_tags)
            allowed: frozenset[str] = frozenset()
        else:
            allowed = definition.effective_allowed_tags(self)
            if not allowed:
                return
            invalid = sorted(user_tags - allowed - required)
        if invalid:
            message = f"Invalid tags for metric '{info.full_name}': {', '.join(invalid)}"
            if definition.no_tags:
                message += ". This metric accepts no tags"
            else:
                message += f". Allowed tags: {', '.join(sorted(allowed | required))}"
            raise InvalidTagError(
                message,
                namespace=info.namespace_name,
                metric=info.full_name,
                invalid=invalid,
            )

    def _check_values(self, info: MetricInfo, tags: dict[str, Any]) -> None:
        visible = self.visible_tags(info)
        for tag_name, value in tags.items():
            tag_def = visible.get(tag_name)
            if tag_def is None:
                continue
            try:
                valid = tag_def.valid_value(value, self.transformers)
            except Exception as e:
                raise InvalidTagValueError(
                    f"Validation of tag '{tag_name}' in metric '{info.full_name}' "
                    f"raised {type(e).__name__} for value '{value}': {e}",
                    namespace=info.namespace_name,
                    metric=info.full_name,
                    tag=tag_name,
                    value=value,
                ) from e
            if valid:
                continue
            raise InvalidTagValueError(
                self._value_message(info, tag_def, value),
                namespace=info.namespace_name,
                metric=info.full_name,
                tag=tag_name,
                value=value,
            )

    def _value_message(self, info: MetricInfo, tag_def: TagDefinition, value: Any) -> str:
        transformed = tag_def.transform_value(value, self.transformers)
        where = f"tag '{tag_def.name}' in metric '{info.full_name}'"
        if not tag_def.type_accepts(transformed):
            return (
                f"Invalid value '{value}' for {where}: "
                f"must be an {TagType.INTEGER.value}, got {type(value).__name__}"
            )
        if tag_def.validate is not None:
            return f"Custom validation failed for {where} with value '{value}'"
        message = f"Invalid value '{value}' for {where}"
        if not isinstance(tag_def.values, AnyValue):
            message += f". Allowed values: {tag_def.values.describe()}"
        return message


def _key(tag: Any) -> str:
    if isinstance(tag, Enum):
        return str(tag.value)
    return str(tag)
