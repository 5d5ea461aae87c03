"""CLI command: estimate the cardinality of a schema."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from statsd_schema.analyzer import Analyzer
from statsd_schema.cli._errors import exit_on_defects, handle_error, load_schema_or_exit
from statsd_schema.formatters import available_formats, get_formatter


def analyze(
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Schema file (.yaml, .yml or .py). Defaults to $STATSD_SCHEMA_FILE."
    ),
    fmt: str = typer.Option(
        "text", "--format", help=f"Output format: {', '.join(available_formats())}."
    ),
    color: Optional[bool] = typer.Option(
        None, "--color/--no-color", help="Colour text output. Default: when stdout is a terminal."
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout."),
) -> None:
    """Analyze a schema file: expanded metric names and tag combinations."""
    if fmt not in available_formats():
        handle_error(
            f"Unsupported format: {fmt}. Supported formats are: {', '.join(available_formats())}"
        )

    builder = load_schema_or_exit(file)
    exit_on_defects(builder)

    use_color = color if color is not None else (output is None and sys.stdout.isatty())
    result = Analyzer(builder.build()).analyze()
    rendered = get_formatter(fmt, color=use_color).render(result)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered, encoding="utf-8")
        typer.echo(f"Wrote {fmt} analysis of {len(result.metrics_analysis)} metrics to {output}")
    else:
        typer.echo(rendered, nl=False, color=use_color)
