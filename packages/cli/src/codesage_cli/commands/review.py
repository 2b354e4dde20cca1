"""review command — review changed files in the current git repository."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from codesage_core.errors import BackendConfigError, CodeSageError
from codesage_core.formatting import OUTPUT_FORMATS
from codesage_core.models import FixResult, FixStatus
from codesage_core.pipeline import ReviewPipeline
from codesage_core.providers.registry import available_providers

console = Console(stderr=True)

_STATUS_STYLE = {
    FixStatus.WRITTEN: "green",
    FixStatus.UNCHANGED: "dim",
    FixStatus.SKIPPED: "dim",
    FixStatus.DECLINED: "yellow",
    FixStatus.REJECTED: "yellow",
    FixStatus.FAILED: "red",
}


def confirm_fixes(question: str) -> bool:
    """Interactive yes/no; anything but an explicit yes (including EOF) is a no."""
    try:
        return click.confirm(question, default=False, err=True)
    except click.Abort:
        return False


def _print_fix_results(results: list[FixResult]) -> None:
    attempted = [r for r in results if r.status != FixStatus.SKIPPED]
    if not attempted:
        return
    table = Table(title="Auto-fix results", show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("Status", width=10)
    table.add_column("Backup / error")
    for r in attempted:
        style = _STATUS_STYLE.get(r.status, "white")
        table.add_row(escape(r.path), f"[{style}]{r.status.value}[/{style}]", escape(r.backup_path or r.error or ""))
    console.print(table)


@click.command("review")
@click.option("--branch", "-b", default=None, help="Branch to compare HEAD against (default: git.default_branch, main).")
@click.option(
    "--files",
    "-f",
    multiple=True,
    help="Review these files instead of a branch diff. Repeat for several files.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Report format. Overrides config file.",
)
@click.option(
    "--provider",
    type=click.Choice(available_providers()),
    default=None,
    help="LLM provider. Overrides config file.",
)
@click.option("--model", default=None, help="Model name. Overrides config file.")
@click.option("--config", "-c", "config_path", default=None, help="Path to the configuration file.")
@click.option("--fix/--no-fix", "auto_fix", default=None, help="Apply AI-suggested fixes to flagged files.")
@click.option("--yes", "-y", is_flag=True, help="Apply fixes without asking for confirmation.")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the report to a file instead of stdout.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show progress details and debug logging.")
@click.pass_context
def review_cmd(
    ctx,
    branch: str | None,
    files: tuple[str, ...],
    output_format: str | None,
    provider: str | None,
    model: str | None,
    config_path: str | None,
    auto_fix: bool | None,
    yes: bool,
    output_path: str | None,
    verbose: bool,
):
    """Review code changes with an LLM and print a report.

    Compares HEAD with --branch (falling back to uncommitted working-tree
    changes if the branch does not exist), or reviews the --files given.

    \b
    Environment variables:
      OPENAI_API_KEY       Required for --provider openai
      ANTHROPIC_API_KEY    Required for --provider anthropic
      OLLAMA_BASE_URL      Ollama server for --provider ollama/qwen (default http://localhost:11434)
    """
    from codesage_cli.logs import configure_logging
    from codesage_core.config import build_review_config, load_config

    configure_logging(verbose)
    console.print("[cyan]🔮 CodeSage - Wisdom for your code[/cyan]\n")

    if config_path is None and ctx.obj:
        config_path = ctx.obj.get("config_path")

    config = load_config(
        config_path,
        cli_overrides={
            "llm.provider": provider,
            "llm.model": model,
            "output.format": output_format,
            "output.verbose": True if verbose else None,
            # A report written to a file should not contain ANSI escapes.
            "output.colors": False if output_path else None,
            "auto_fix.enabled": auto_fix,
            "auto_fix.confirm_before_apply": False if yes else None,
        },
    )
    try:
        review_config = build_review_config(config, branch=branch, files=list(files) or None)
    except BackendConfigError as e:
        raise click.UsageError(str(e))

    def emit(rendered: str) -> None:
        if output_path:
            Path(output_path).write_text(rendered + "\n", encoding="utf-8")
            console.print(f"[green]Report written to {output_path}[/green]")
        else:
            click.echo(rendered)

    try:
        pipeline = ReviewPipeline(review_config, confirm=confirm_fixes, output=emit)
    except BackendConfigError as e:
        raise click.UsageError(str(e))

    try:
        outcome = pipeline.run()
    except CodeSageError as e:
        raise click.ClickException(str(e))

    if outcome.report is None:
        console.print(f"[yellow]{outcome.message}[/yellow]")
        return

    _print_fix_results(outcome.fixes)
    console.print(f"[green]✅ Code review completed successfully! {outcome.message}.[/green]")
