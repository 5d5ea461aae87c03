"""statsd-schema CLI -- typer-based command interface.

Commands:
    statsd-schema analyze --file F    Estimate metric names and tag combinations
    statsd-schema validate --file F   Check the schema for structural defects
    statsd-schema metrics --file F    List declared metrics

Exit codes: 0 success, 1 missing/unreadable input, 2 schema defects.
"""

from __future__ import annotations

import typer

from statsd_schema.cli import analyze, inspect_cmd

app = typer.Typer(
    name="statsd-schema",
    help="Declare, validate, and cost-estimate StatsD metrics.",
    no_args_is_help=True,
)

app.command("analyze")(analyze.analyze)
app.command("validate")(inspect_cmd.validate)
app.command("metrics")(inspect_cmd.metrics)


def main() -> None:
    """Entry point for the statsd-schema CLI."""
    app()
