"""Render an AnalysisResult as text, JSON, or YAML.

All formatters implement ``render(result) -> str``. JSON and YAML output is
``AnalysisResult.to_dict()`` verbatim, so it round-trips through
``AnalysisResult.from_dict``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import typer
import yaml

from statsd_schema.analyzer import AnalysisResult, MetricAnalysis

_WIDTH = 94


@runtime_checkable
class AnalysisFormatter(Protocol):
    def render(self, result: AnalysisResult) -> str: ...


@dataclass
class TextFormatter:
    """Human-readable report. ANSI colour only when ``color`` is set."""

    color: bool = True

    def render(self, result: AnalysisResult) -> str:
        lines: list[str] = []
        lines.extend(self._banner("Detailed Metric Analysis:"))
        for analysis in result.metrics_analysis:
            lines.append("")
            lines.extend(self._metric(analysis))
            lines.append(self._style(" " + "─" * _WIDTH, bold=True))

        lines.extend(self._banner("Schema Analysis Results:", "SUMMARY"))
        lines.append("")
        lines.append(
            "                     Total unique metrics: "
            + self._number(result.total_unique_metrics)
        )
        lines.append(
            "Total possible custom metric combinations: "
            + self._number(result.total_possible_custom_metrics)
        )
        lines.append("")
        return "\n".join(lines) + "\n"

    def _metric(self, analysis: MetricAnalysis) -> list[str]:
        lines = [
            "  • "
            + self._style(analysis.metric_type, fg=typer.colors.CYAN)
            + "('"
            + self._style(analysis.metric_name, fg=typer.colors.YELLOW, bold=True)
            + "')"
        ]
        if len(analysis.expanded_names) > 1:
            lines.append("    Expanded names:")
            for name in analysis.expanded_names:
                lines.append(self._style(f"      • {name}", fg=typer.colors.YELLOW))
        lines.append("")
        lines.append("                              Unique tags: " + self._number(analysis.unique_tags))
        lines.append(
            "                         Total tag values: " + self._number(analysis.unique_tag_values)
        )
        lines.append(
            "                    Possible combinations: " + self._number(analysis.total_combinations)
        )
        lines.append("")
        return lines

    def _banner(self, *titles: str) -> list[str]:
        lines = [self._style("┌" + "─" * _WIDTH + "┐", fg=typer.colors.WHITE, bg=typer.colors.BLUE)]
        for title in titles:
            lines.append(
                self._style(f"│ {title:<{_WIDTH - 1}}│", fg=typer.colors.WHITE, bg=typer.colors.BLUE)
            )
        lines.append(self._style("└" + "─" * _WIDTH + "┘", fg=typer.colors.WHITE, bg=typer.colors.BLUE))
        return lines

    def _number(self, value: int) -> str:
        return self._style(f"{value:3d}", fg=typer.colors.GREEN, bold=True)

    def _style(self, text: str, **styles: Any) -> str:
        if not self.color:
            return text
        return typer.style(text, **styles)


@dataclass
class JSONFormatter:
    indent: int = 2

    def render(self, result: AnalysisResult) -> str:
        return json.dumps(result.to_dict(), indent=self.indent) + "\n"


@dataclass
class YAMLFormatter:
    def render(self, result: AnalysisResult) -> str:
        return yaml.safe_dump(
            result.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_formatters: dict[str, type] = {
    "text": TextFormatter,
    "json": JSONFormatter,
    "yaml": YAMLFormatter,
}


def register_formatter(name: str, cls: type) -> None:
    _formatters[name] = cls


def available_formats() -> list[str]:
    return list(_formatters)


def get_formatter(name: str, **kwargs: Any) -> AnalysisFormatter:
    """Instantiate the formatter registered under ``name``.

    Keyword arguments the formatter does not accept (``color`` for JSON,
    for instance) are dropped.
    """
    cls = _formatters.get(name)
    if cls is None:
        raise ValueError(
            f"Unsupported format: {name!r}. Supported formats are: {', '.join(_formatters)}"
        )
    accepted = getattr(cls, "__dataclass_fields__", {})
    return cls(**{k: v for k, v in kwargs.items() if k in accepted})
