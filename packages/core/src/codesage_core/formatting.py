"""Render a Report as console text, JSON, or markdown.

Pure presentation: nothing here inspects review content beyond picking a
colour for lines that start with a recognised label.
"""

from __future__ import annotations

import io
import json
import re

from rich.console import Console
from rich.markup import escape
from rich.text import Text

from codesage_core.models import Report

OUTPUT_FORMATS = ("console", "json", "markdown")

_RULE_WIDTH = 80

_LINE_STYLES = (
    (re.compile(r"^\s*(Issue|Problem|Warning):", re.IGNORECASE), "red"),
    (re.compile(r"^\s*(Suggestion|Recommendation):", re.IGNORECASE), "yellow"),
    (re.compile(r"^\s*(Good|Positive):", re.IGNORECASE), "green"),
)


def format_report(report: Report, output_format: str = "console", colors: bool = True) -> str:
    fmt = (output_format or "console").lower()
    if fmt == "json":
        return format_json(report)
    if fmt == "markdown":
        return format_markdown(report)
    return format_console(report, colors=colors)


def format_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def _line_style(line: str) -> str | None:
    for pattern, style in _LINE_STYLES:
        if pattern.match(line):
            return style
    return None


def format_console(report: Report, colors: bool = True) -> str:
    buffer = io.StringIO()
    out = Console(
        file=buffer,
        force_terminal=colors,
        color_system="standard" if colors else None,
        highlight=False,
        soft_wrap=True,
        width=_RULE_WIDTH,
    )

    out.print("=" * _RULE_WIDTH)
    out.print("[bold cyan]🔮 CodeSage Review Report[/bold cyan]")
    out.print(f"Generated at: {report.generated_at.isoformat()}")
    out.print("=" * _RULE_WIDTH)
    out.print()

    summary = report.summary
    out.print("[bold yellow]📊 SUMMARY[/bold yellow]")
    out.print("-" * 40)
    out.print(f"Files reviewed: {summary.total_reviewed}")
    out.print(f"Files with potential issues: {summary.files_with_issues}")
    out.print(f"Total lines changed: {summary.total_lines_changed}")
    out.print()

    metrics = report.metrics
    out.print("[bold yellow]📈 METRICS[/bold yellow]")
    out.print("-" * 40)
    out.print(f"Average lines per file: {metrics.avg_lines_per_file:.1f}")
    if metrics.counts_by_kind:
        out.print("Files by change type:")
        for kind, count in metrics.counts_by_kind.items():
            out.print(f"  {kind}: {count}")
    out.print()

    out.print("[bold yellow]📝 DETAILED REVIEWS[/bold yellow]")
    out.print("-" * _RULE_WIDTH)
    for index, review in enumerate(report.reviews, 1):
        out.print()
        out.print(f"[bold cyan]{index}. {escape(review.path)}[/bold cyan]")
        out.print(f"   Type: {review.change_kind.value} | +{review.lines_added} -{review.lines_removed}")
        out.print("   " + "-" * 70)
        for line in review.review_text.splitlines():
            out.print(Text(f"   {line}", style=_line_style(line) or ""))

    if report.recommendations:
        out.print()
        out.print("[bold yellow]💡 RECOMMENDATIONS[/bold yellow]")
        out.print("-" * 40)
        for index, rec in enumerate(report.recommendations, 1):
            out.print(f"{index}. {escape(rec)}")

    out.print()
    out.print("=" * _RULE_WIDTH)
    return buffer.getvalue().rstrip("\n")


def format_markdown(report: Report) -> str:
    summary = report.summary
    metrics = report.metrics
    lines = [
        "# 🔮 CodeSage Review Report",
        "",
        f"**Generated at:** {report.generated_at.isoformat()}",
        "",
        "## 📊 Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Files reviewed | {summary.total_reviewed} |",
        f"| Files with potential issues | {summary.files_with_issues} |",
        f"| Total lines changed | {summary.total_lines_changed} |",
        "",
        "## 📈 Metrics",
        "",
        f"- **Average lines per file:** {metrics.avg_lines_per_file:.1f}",
    ]
    if metrics.counts_by_kind:
        lines.append("- **Files by change type:**")
        lines.extend(f"  - {kind}: {count}" for kind, count in metrics.counts_by_kind.items())
    lines += ["", "## 📝 Detailed Reviews", ""]

    for index, review in enumerate(report.reviews, 1):
        lines += [
            f"### {index}. `{review.path}`",
            "",
            f"**Change Type:** {review.change_kind.value} | "
            f"**Lines:** +{review.lines_added} -{review.lines_removed}",
            "",
            "```",
            review.review_text,
            "```",
            "",
        ]

    if report.recommendations:
        lines += ["## 💡 Recommendations", ""]
        lines.extend(f"{index}. {rec}" for index, rec in enumerate(report.recommendations, 1))
        lines.append("")

    return "\n".join(lines)
