"""CLI commands for checking and listing a schema."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from statsd_schema.cli._errors import exit_on_defects, handle_error, load_schema_or_exit
from statsd_schema.errors import UnknownNamespaceError

_FILE_HELP = "Schema file (.yaml, .yml or .py). Defaults to $STATSD_SCHEMA_FILE."


def validate(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help=_FILE_HELP),
) -> None:
    """Check tag references, inheritance, and duplicate metric names."""
    builder = load_schema_or_exit(file)
    exit_on_defects(builder)
    schema = builder.build()
    typer.echo(
        f"Schema OK: {schema.total_metrics_count()} metrics "
        f"in {schema.total_namespaces_count()} namespaces"
    )


def metrics(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help=_FILE_HELP),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Only list metrics under this dotted namespace path."
    ),
) -> None:
    """List every fully-qualified metric with its kind."""
    schema = load_schema_or_exit(file).build()
    if namespace:
        try:
            subtree = schema.require_namespace(namespace)
        except UnknownNamespaceError as e:
            handle_error(e.message)
        all_metrics = subtree.all_metrics(tuple(namespace.split(".")[:-1]))
    else:
        all_metrics = schema.all_metrics()
    if not all_metrics:
        typer.echo("No metrics defined.")
        return

    width = max(len(name) for name in all_metrics)
    typer.echo(f"{'Metric':<{width}}  {'Type':<12} Tags")
    typer.echo("-" * (width + 24))
    for name, info in all_metrics.items():
        definition = info.definition
        tags = ", ".join(
            [*(f"{t}*" for t in sorted(definition.required_tags)),
             *sorted(definition.allowed_tags - definition.required_tags)]
        )
        if definition.no_tags:
            tags = "(none)"
        elif not tags:
            tags = "(any)"
        typer.echo(f"{name:<{width}}  {definition.type.value:<12} {tags}")
