"""Named tag-value transformers.

A TagDefinition lists transformer *names*; the functions themselves live in
a registry owned by the schema builder. Names that are not in the registry
are skipped when a value is transformed.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

Transformer = Callable[[Any], Any]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[-.\s]+")

MAX_TRUNCATED_LENGTH = 64


def downcase(value: Any) -> str:
    return str(value).lower()


def upcase(value: Any) -> str:
    return str(value).upper()


def strip(value: Any) -> str:
    return str(value).strip()


def underscore(value: Any) -> str:
    """CamelCase -> snake_case; module separators become dots.

    >>> underscore("Admin::UsersController")
    'admin.users_controller'
    """
    text = str(value).replace("::", ".").replace("/", ".")
    text = _CAMEL_BOUNDARY.sub("_", text)
    return text.replace("-", "_").lower()


def dasherize(value: Any) -> str:
    return str(value).replace("_", "-")


def normalize_separators(value: Any) -> str:
    return _SEPARATORS.sub("_", str(value))


def truncate(value: Any) -> str:
    return str(value)[:MAX_TRUNCATED_LENGTH]


BUILTIN_TRANSFORMERS: dict[str, Transformer] = {
    "downcase": downcase,
    "upcase": upcase,
    "strip": strip,
    "underscore": underscore,
    "dasherize": dasherize,
    "normalize_separators": normalize_separators,
    "truncate": truncate,
}


def default_transformers(**overrides: Transformer) -> dict[str, Transformer]:
    """Fresh registry with the built-ins; keyword overrides win."""
    registry = dict(BUILTIN_TRANSFORMERS)
    registry.update(overrides)
    return registry
