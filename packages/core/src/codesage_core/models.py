"""Data model shared by every stage of the review pipeline.

Change and Review are frozen: a Change is produced once by the git source and
never edited, and a Review is a snapshot of one backend response. Report is
rebuilt from scratch on every run and never persisted by the core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Change:
    """One file's modification between two git states, or a file supplied explicitly."""

    path: str
    kind: ChangeKind
    diff: str
    content: str | None = None
    lines_added: int = 0
    lines_removed: int = 0
    # Only set for renames: the path the file had before.
    old_path: str | None = None

    def __post_init__(self):
        if self.lines_added < 0 or self.lines_removed < 0:
            raise ValueError(f"Line counts must be non-negative for {self.path!r}")


@dataclass(frozen=True)
class Review:
    """The backend's free-text assessment of one Change."""

    path: str
    change_kind: ChangeKind
    lines_added: int
    lines_removed: int
    review_text: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def lines_changed(self) -> int:
        return self.lines_added + self.lines_removed

    def to_dict(self) -> dict:
        return {
            "file": self.path,
            "change_type": self.change_kind.value,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "review": self.review_text,
            "timestamp": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ReportSummary:
    total_reviewed: int = 0
    files_with_issues: int = 0
    total_lines_changed: int = 0


@dataclass(frozen=True)
class ReportMetrics:
    avg_lines_per_file: float = 0
    counts_by_kind: dict[str, int] = field(default_factory=dict)


@dataclass
class Report:
    """Aggregated result of a full run, ready for formatting."""

    summary: ReportSummary
    metrics: ReportMetrics
    reviews: list[Review] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at.isoformat(),
            "summary": {
                "total_files_reviewed": self.summary.total_reviewed,
                "files_with_issues": self.summary.files_with_issues,
                "total_lines_changed": self.summary.total_lines_changed,
            },
            "metrics": {
                "avg_lines_per_file": self.metrics.avg_lines_per_file,
                "files_by_type": dict(self.metrics.counts_by_kind),
            },
            "reviews": [r.to_dict() for r in self.reviews],
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class FileFilter:
    """Glob patterns selecting which changed files are sent for review.

    An empty ``include`` list means every code file is eligible.
    """

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class BackendConfig:
    provider: str = "openai"
    model: str | None = None  # None → the provider's DEFAULT_MODEL
    temperature: float = 0.1
    max_tokens: int = 2000
    api_key: str | None = None
    base_url: str | None = None
    timeout: float | None = None


DEFAULT_FOCUS_AREAS = ("code quality", "correctness", "security", "performance", "maintainability")


@dataclass(frozen=True)
class ReviewConfig:
    """Immutable snapshot of everything a single run needs.

    Built once at the CLI boundary by config.build_review_config() and passed
    down; nothing in the pipeline reads environment variables or config files.
    """

    branch: str = "main"
    files: tuple[str, ...] | None = None
    file_filter: FileFilter = field(default_factory=FileFilter)
    output_format: str = "console"
    backend: BackendConfig = field(default_factory=BackendConfig)
    auto_fix_enabled: bool = False
    confirm_before_fix: bool = True
    create_backups: bool = True
    focus_areas: tuple[str, ...] = DEFAULT_FOCUS_AREAS
    colors: bool = True
    verbose: bool = False

    @property
    def backend_provider(self) -> str:
        return self.backend.provider

    @property
    def backend_model(self) -> str | None:
        return self.backend.model


class FixStatus(str, Enum):
    SKIPPED = "skipped"  # review text did not flag the file
    DECLINED = "declined"  # user answered no to the confirmation
    WRITTEN = "written"
    UNCHANGED = "unchanged"  # backend returned the same content
    REJECTED = "rejected"  # fixed content failed the sanity check
    FAILED = "failed"


@dataclass(frozen=True)
class FixResult:
    path: str
    status: FixStatus
    backup_path: str | None = None
    error: str | None = None
