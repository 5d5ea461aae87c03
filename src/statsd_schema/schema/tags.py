"""Tag definitions: permitted values, declared type, transforms, custom checks.

The permitted-values declaration is a closed set of variants instead of an
"any" field inspected at runtime:

    AnyValue()                      no restriction
    Enumeration(("a", "b"))         finite set of literals
    Pattern(re.compile("^v\\d+$"))  regex on the value's string form
    Predicate(fn)                   arbitrary boolean function
    FixedValue("x")                 exactly one literal

restriction_from() maps the loose forms a schema author writes (None, a
list, a compiled regex, a callable, a scalar) onto these variants.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

# Fixed estimates used by the analyzer when the value set is open-ended.
PATTERN_VALUE_ESTIMATE = 50
OPEN_VALUE_ESTIMATE = 100

_WHOLE_NUMBER = re.compile(r"\d+")


class TagType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    SYMBOL = "symbol"


# ---------------------------------------------------------------------------
# Value restriction variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnyValue:
    """No restriction: every value is accepted."""

    def allows(self, value: Any) -> bool:
        return True

    @property
    def estimated_count(self) -> int:
        return OPEN_VALUE_ESTIMATE

    def describe(self) -> str:
        return "any value"


@dataclass(frozen=True)
class Enumeration:
    """A finite set of literals, compared by literal and by string form."""

    values: tuple[Any, ...]
    _as_strings: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        object.__setattr__(self, "_as_strings", frozenset(str(v) for v in self.values))

    def allows(self, value: Any) -> bool:
        try:
            if value in self.values:
                return True
        except TypeError:
            pass
        return str(value) in self._as_strings

    @property
    def estimated_count(self) -> int:
        return len(self.values)

    def describe(self) -> str:
        return ", ".join(str(v) for v in self.values)


@dataclass(frozen=True)
class Pattern:
    """A regular expression matched anywhere in the value's string form."""

    regex: re.Pattern[str]

    def __post_init__(self) -> None:
        if isinstance(self.regex, str):
            object.__setattr__(self, "regex", re.compile(self.regex))

    def allows(self, value: Any) -> bool:
        return self.regex.search(str(value)) is not None

    @property
    def estimated_count(self) -> int:
        return PATTERN_VALUE_ESTIMATE

    def describe(self) -> str:
        return f"/{self.regex.pattern}/"


@dataclass(frozen=True)
class Predicate:
    """An arbitrary boolean function over the value."""

    fn: Callable[[Any], Any]

    def allows(self, value: Any) -> bool:
        return bool(self.fn(value))

    @property
    def estimated_count(self) -> int:
        # The accepted set is unknowable; cost it like an open tag.
        return OPEN_VALUE_ESTIMATE

    def describe(self) -> str:
        return f"values accepted by {getattr(self.fn, '__name__', 'predicate')}"


@dataclass(frozen=True)
class FixedValue:
    """Exactly one permitted literal."""

    value: Any

    def allows(self, value: Any) -> bool:
        return value == self.value or str(value) == str(self.value)

    @property
    def estimated_count(self) -> int:
        return 1

    def describe(self) -> str:
        return str(self.value)


ValueRestriction = Union[AnyValue, Enumeration, Pattern, Predicate, FixedValue]

_RESTRICTION_TYPES = (AnyValue, Enumeration, Pattern, Predicate, FixedValue)


def restriction_from(raw: Any) -> ValueRestriction:
    """Convert a loosely-declared ``values`` option into a restriction variant."""
    if raw is None:
        return AnyValue()
    if isinstance(raw, _RESTRICTION_TYPES):
        return raw
    if isinstance(raw, re.Pattern):
        return Pattern(raw)
    if isinstance(raw, (list, tuple, set, frozenset)):
        values = sorted(raw, key=str) if isinstance(raw, (set, frozenset)) else raw
        return Enumeration(tuple(values))
    if callable(raw):
        return Predicate(raw)
    return FixedValue(raw)


# ---------------------------------------------------------------------------
# TagDefinition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagDefinition:
    """One tag's name, permitted values, type, transforms, and custom validator."""

    name: str
    values: ValueRestriction = field(default_factory=AnyValue)
    type: TagType = TagType.STRING
    transform: tuple[str, ...] = ()
    validate: Callable[[Any], Any] | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", str(self.name))
        object.__setattr__(self, "values", restriction_from(self.values))
        object.__setattr__(self, "type", TagType(self.type))
        transform = self.transform
        if isinstance(transform, str):
            transform = (transform,)
        object.__setattr__(self, "transform", tuple(str(t) for t in transform))

    @property
    def restricted(self) -> bool:
        return not isinstance(self.values, AnyValue)

    def allows_value(self, value: Any) -> bool:
        """Check ``value`` against the permitted-values declaration only."""
        return self.values.allows(value)

    def transform_value(
        self, value: Any, transformers: Mapping[str, Callable[[Any], Any]] | None = None
    ) -> Any:
        """Apply the declared transforms in order; unknown names are skipped."""
        transformers = transformers or {}
        for name in self.transform:
            fn = transformers.get(name)
            if fn is not None:
                value = fn(value)
        return value

    def type_accepts(self, value: Any) -> bool:
        if self.type is TagType.INTEGER:
            if isinstance(value, int) and not isinstance(value, bool):
                return True
            return _WHOLE_NUMBER.fullmatch(str(value)) is not None
        return True

    def valid_value(
        self, value: Any, transformers: Mapping[str, Callable[[Any], Any]] | None = None
    ) -> bool:
        """Transform, type-check, then run the custom validator or value check.

        A custom ``validate`` function is authoritative: when present the
        permitted-values declaration is not consulted.
        """
        transformed = self.transform_value(value, transformers)
        if not self.type_accepts(transformed):
            return False
        if self.validate is not None:
            return bool(self.validate(transformed))
        return self.allows_value(transformed)

    @property
    def estimated_value_count(self) -> int:
        return self.values.estimated_count


def tag_names(tags: Iterable[Any]) -> frozenset[str]:
    """Normalise tag keys (strings, enums, anything with a str form) to strings."""
    return frozenset(_key(t) for t in tags)


def _key(tag: Any) -> str:
    if isinstance(tag, Enum):
        return str(tag.value)
    return str(tag)
