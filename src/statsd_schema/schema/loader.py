"""Load a schema definition file into a Namespace tree.

Supported sources:
    *.yaml / *.yml   declarative schema (see SchemaBuilder.from_dict)
    *.py             a module exposing ``schema`` (a built Namespace) or
                     ``build(builder)`` which populates a SchemaBuilder
"""

from __future__ import annotations

import importlib.util
from pathlib import Path

import yaml

from statsd_schema.errors import SchemaLoadError
from statsd_schema.logging import get_logger
from statsd_schema.schema.builder import SchemaBuilder
from statsd_schema.schema.namespace import Namespace

YAML_SUFFIXES = (".yaml", ".yml")


def load_builder(path: str | Path) -> SchemaBuilder:
    """Load a schema file and return the populated builder.

    Raises FileNotFoundError when the file does not exist and
    SchemaLoadError when it cannot be interpreted.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Schema file not found: {file_path}")

    if file_path.suffix in YAML_SUFFIXES:
        builder = _load_yaml(file_path)
    elif file_path.suffix == ".py":
        builder = _load_python(file_path)
    else:
        raise SchemaLoadError(
            f"Unsupported schema file type {file_path.suffix!r}. "
            f"Use one of: {', '.join((*YAML_SUFFIXES, '.py'))}"
        )

    schema = builder.build()
    get_logger("statsd_schema.loader").info(
        "schema.loaded",
        path=str(file_path),
        namespaces=schema.total_namespaces_count(),
        metrics=schema.total_metrics_count(),
    )
    return builder


def load_file(path: str | Path) -> Namespace:
    """Load a schema file into its root Namespace."""
    return load_builder(path).build()


def _load_yaml(path: Path) -> SchemaBuilder:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SchemaLoadError(f"Cannot read schema file {path}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML in {path}: {e}") from e
    return SchemaBuilder.from_dict(data or {})


def _load_python(path: Path) -> SchemaBuilder:
    spec = importlib.util.spec_from_file_location(f"_statsd_schema_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise SchemaLoadError(f"Cannot import schema module {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise SchemaLoadError(f"Error executing schema module {path}: {e}") from e

    build = getattr(module, "build", None)
    if callable(build):
        builder = SchemaBuilder()
        try:
            build(builder)
        except Exception as e:
            raise SchemaLoadError(f"Error building schema from {path}: {e}") from e
        return builder

    schema = getattr(module, "schema", None)
    if isinstance(schema, Namespace):
        builder = SchemaBuilder()
        if schema.is_root:
            for child in schema.namespaces.values():
                builder.add_namespace(child)
        else:
            builder.add_namespace(schema)
        return builder

    raise SchemaLoadError(
        f"Schema module {path} must define 'schema' (a Namespace) or 'build(builder)'"
    )
