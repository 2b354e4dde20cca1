"""Apply model-suggested rewrites to flagged files.

Per file: candidate → (skipped) | confirm → (declined) | fixing → (rejected |
unchanged | failed) | backed-up → (written).

The confirmation is asked once for the whole batch, before any file is
touched; a "no" leaves every file as it was. After that, each file succeeds
or fails on its own; there is no rollback of files already written.
"""

from __future__ import annotations

import logging
import re
import shutil
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from codesage_core.errors import BackendInvocationFailed, FilesystemFailure, FixRejected
from codesage_core.models import ChangeKind, FixResult, FixStatus, Review
from codesage_core.prompts import build_fix_prompt
from codesage_core.providers.base import BaseBackend
from codesage_core.utils.code import language_for

console = Console(stderr=True)
logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]

FIX_CANDIDATE_MARKERS = ("issue", "problem", "fix", "improvement")

# A response must contain at least one of these to be accepted as source code.
_STRUCTURAL_MARKERS = {
    "ruby": ("def ", "class ", "module ", "end", "require", "="),
    "python": ("def ", "class ", "import ", "return", "=", "("),
    "javascript": ("function", "const ", "let ", "=>", "import ", "{"),
    "typescript": ("function", "const ", "let ", "=>", "import ", "interface ", "{"),
    "go": ("package ", "func ", "import "),
    "rust": ("fn ", "use ", "struct ", "impl ", "let "),
    "java": ("class ", "interface ", "import ", "{"),
    "kotlin": ("fun ", "class ", "val ", "import "),
    "c": ("#include", "{", ";"),
    "cpp": ("#include", "{", ";"),
    "csharp": ("class ", "using ", "namespace ", "{"),
    "php": ("<?php", "function", "$"),
    "swift": ("func ", "import ", "let ", "var "),
    "bash": ("#!", "=", "echo", "if "),
}
_GENERIC_MARKERS = ("=", "(", "{", ":", ";")

_OPENING_FENCE_RE = re.compile(r"^```[\w+#.-]*[ \t]*\n?")
_CLOSING_FENCE_RE = re.compile(r"\n?```[ \t]*$")


def is_fix_candidate(review: Review) -> bool:
    return any(marker in review.review_text for marker in FIX_CANDIDATE_MARKERS)


def strip_code_fences(text: str) -> str:
    """Remove an outer markdown fence the model wrapped the file in, keeping inner content intact."""
    cleaned = _OPENING_FENCE_RE.sub("", text.strip(), count=1)
    return _CLOSING_FENCE_RE.sub("", cleaned, count=1)


def looks_like_source(path: str, content: str) -> bool:
    if not content.strip():
        return False
    markers = _STRUCTURAL_MARKERS.get(language_for(path), _GENERIC_MARKERS)
    return any(marker in content for marker in markers)


def backup_path_for(path: Path, timestamp: int | None = None) -> Path:
    stamp = int(time.time()) if timestamp is None else timestamp
    return path.with_name(f"{path.name}.backup.{stamp}")


class AutoFixer:
    """Re-asks the backend for corrected file content and writes it back to disk."""

    def __init__(
        self,
        backend: BaseBackend,
        confirm: ConfirmFn | None = None,
        create_backups: bool = True,
        root: str | Path = ".",
    ):
        self.backend = backend
        self.confirm = confirm
        self.create_backups = create_backups
        self.root = Path(root)

    def apply(self, reviews: Sequence[Review], confirm_before_fix: bool = True) -> list[FixResult]:
        """Fix every candidate review's file; results come back in review order."""
        candidates = [r for r in reviews if is_fix_candidate(r) and r.change_kind != ChangeKind.DELETED]
        if not candidates:
            console.print("[green]No files flagged for automatic fixes.[/green]")
            return [FixResult(path=r.path, status=FixStatus.SKIPPED) for r in reviews]

        approved = True
        if confirm_before_fix:
            question = f"Apply AI-suggested fixes to {len(candidates)} file(s)?"
            approved = bool(self.confirm(question)) if self.confirm is not None else False
            if not approved:
                console.print("[yellow]Auto-fix cancelled. No files were modified.[/yellow]")

        candidate_ids = {id(r) for r in candidates}
        results = []
        for review in reviews:
            if id(review) not in candidate_ids:
                results.append(FixResult(path=review.path, status=FixStatus.SKIPPED))
            elif not approved:
                results.append(FixResult(path=review.path, status=FixStatus.DECLINED))
            else:
                results.append(self.fix_file(review))

        written = sum(1 for r in results if r.status == FixStatus.WRITTEN)
        if approved:
            console.print(f"[bold]Auto-fix complete: {written} of {len(candidates)} file(s) updated.[/bold]")
        return results

    def fix_file(self, review: Review) -> FixResult:
        path = self.root / review.path
        console.print(f"🔧 Fixing: {review.path}")
        try:
            current = self._read(path)
            fixed = self._request_fix(review, current)
            if fixed == current:
                console.print(f"  [dim]No change needed for {review.path}[/dim]")
                return FixResult(path=review.path, status=FixStatus.UNCHANGED)
            backup = self._backup(path) if self.create_backups else None
            self._write(path, fixed)
        except FixRejected as e:
            console.print(f"  [yellow]Skipping {escape(review.path)}: {escape(str(e))}[/yellow]")
            return FixResult(path=review.path, status=FixStatus.REJECTED, error=str(e))
        except (BackendInvocationFailed, FilesystemFailure) as e:
            logger.debug("Auto-fix failed for %s: %s", review.path, e)
            console.print(f"  [red]Error fixing {escape(review.path)}: {escape(str(e))}[/red]")
            return FixResult(path=review.path, status=FixStatus.FAILED, error=str(e))

        if backup is not None:
            console.print(f"  [dim]Backup saved to {backup}[/dim]")
        console.print(f"  [green]Applied fix to {review.path}[/green]")
        return FixResult(
            path=review.path,
            status=FixStatus.WRITTEN,
            backup_path=str(backup) if backup is not None else None,
        )

    def _request_fix(self, review: Review, current: str) -> str:
        try:
            raw = self.backend.ask(build_fix_prompt(review.path, current, review.review_text))
        except BackendInvocationFailed:
            raise
        except Exception as e:
            raise BackendInvocationFailed(f"{type(e).__name__}: {e}") from e

        fixed = strip_code_fences(raw)
        if not looks_like_source(review.path, fixed):
            raise FixRejected("response does not look like source code")
        # ask() strips whitespace; keep the file's trailing newline convention.
        if current.endswith("\n") and not fixed.endswith("\n"):
            fixed += "\n"
        return fixed

    @staticmethod
    def _read(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FilesystemFailure(f"could not read {path}: {e}") from e

    @staticmethod
    def _backup(path: Path) -> Path:
        backup = backup_path_for(path)
        try:
            shutil.copy2(path, backup)
        except OSError as e:
            raise FilesystemFailure(f"could not back up {path}: {e}") from e
        return backup

    @staticmethod
    def _write(path: Path, content: str) -> None:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FilesystemFailure(f"could not write {path}: {e}") from e
