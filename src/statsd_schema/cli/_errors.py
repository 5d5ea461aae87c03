"""CLI error handling and schema loading helpers."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from statsd_schema.config import SchemaConfig
from statsd_schema.errors import SchemaLoadError
from statsd_schema.schema.builder import SchemaBuilder
from statsd_schema.schema.loader import load_builder

EXIT_OK = 0
EXIT_MISSING_INPUT = 1
EXIT_SCHEMA_INVALID = 2


def handle_error(msg: str, code: int = EXIT_MISSING_INPUT) -> NoReturn:
    """Print an error message and exit."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(code)


def resolve_schema_path(file: Path | None) -> Path:
    """--file, falling back to STATSD_SCHEMA_FILE."""
    if file is not None:
        return file
    configured = SchemaConfig().schema_path
    if configured:
        return Path(configured)
    handle_error(
        "--file option is required\nUsage: statsd-schema analyze --file <schema.yaml>"
    )


def load_schema_or_exit(file: Path | None) -> SchemaBuilder:
    """Load the schema file; exit 1 when it is missing or unreadable."""
    path = resolve_schema_path(file)
    try:
        return load_builder(path)
    except FileNotFoundError:
        handle_error(f"Schema file not found: {path}")
    except SchemaLoadError as e:
        handle_error(str(e))


def exit_on_defects(builder: SchemaBuilder) -> None:
    """Print structural defects to stderr and exit 2 if there are any."""
    defects = builder.validate()
    if not defects:
        return
    typer.echo(f"Schema validation failed ({len(defects)} defects):", err=True)
    for defect in defects:
        typer.echo(f"  - {defect}", err=True)
    raise typer.Exit(EXIT_SCHEMA_INVALID)
