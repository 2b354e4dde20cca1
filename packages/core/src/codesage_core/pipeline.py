"""End-to-end review run: git changes → per-file reviews → report → optional auto-fix."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from codesage_core.autofix import AutoFixer, ConfirmFn
from codesage_core.formatting import format_report
from codesage_core.models import Change, FixResult, Report, Review, ReviewConfig
from codesage_core.providers.base import BaseBackend
from codesage_core.providers.registry import create_backend
from codesage_core.report import aggregate
from codesage_core.reviewer import review_changes
from codesage_core.vcs.git import GitChangeSource

console = Console(stderr=True)

NO_CHANGES_MESSAGE = "No changes to review"


@dataclass
class ReviewOutcome:
    """What a run produced. ``success`` is False only for errors that stopped the run."""

    success: bool
    message: str = ""
    changes: list[Change] = field(default_factory=list)
    reviews: list[Review] = field(default_factory=list)
    report: Report | None = None
    rendered: str = ""
    fixes: list[FixResult] = field(default_factory=list)


class ReviewPipeline:
    """Wires the change source, backend, and auto-fixer for one run.

    The backend is built in the constructor so a bad provider or missing key
    fails before any git or network work starts. It is the only fatal error.
    """

    def __init__(
        self,
        config: ReviewConfig,
        backend: BaseBackend | None = None,
        source: GitChangeSource | None = None,
        confirm: ConfirmFn | None = None,
        repo_path: str | Path = ".",
        output: Callable[[str], None] | None = None,
    ):
        self.config = config
        self.output = output
        self.backend = backend if backend is not None else create_backend(config.backend)
        self.source = source if source is not None else GitChangeSource(repo_path, config.file_filter)
        self.confirm = confirm
        self.repo_path = Path(repo_path)

    def run(self) -> ReviewOutcome:
        config = self.config
        if config.verbose:
            console.print("🔍 Analyzing code changes...")

        changes = self.source.get_changes(branch=config.branch, files=config.files)
        if not changes:
            return ReviewOutcome(success=True, message=NO_CHANGES_MESSAGE)

        console.print(f"📝 Found {len(changes)} changed file(s)")
        reviews = review_changes(changes, self.backend, config.focus_areas)
        report = aggregate(reviews)
        rendered = format_report(report, config.output_format, colors=config.colors)
        # Shown before auto-fix so the confirmation is answered with the report on screen.
        if self.output is not None:
            self.output(rendered)

        fixes: list[FixResult] = []
        if config.auto_fix_enabled:
            # Change paths are relative to the repository top level, not repo_path.
            fixer = AutoFixer(
                self.backend,
                confirm=self.confirm,
                create_backups=config.create_backups,
                root=getattr(self.source, "work_tree", self.repo_path),
            )
            fixes = fixer.apply(reviews, confirm_before_fix=config.confirm_before_fix)

        return ReviewOutcome(
            success=True,
            message=f"Reviewed {len(reviews)} of {len(changes)} changed file(s)",
            changes=changes,
            reviews=reviews,
            report=report,
            rendered=rendered,
            fixes=fixes,
        )


def run_review(
    config: ReviewConfig,
    backend: BaseBackend | None = None,
    confirm: ConfirmFn | None = None,
    repo_path: str | Path = ".",
    output: Callable[[str], None] | None = None,
) -> ReviewOutcome:
    return ReviewPipeline(config, backend=backend, confirm=confirm, repo_path=repo_path, output=output).run()
