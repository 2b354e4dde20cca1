"""Change extraction from a local git repository.

Everything goes through the ``git`` binary via subprocess, so the diffs handed
to the model are the ones ``git diff`` prints.

Resolution order for a branch review:
  1. ``<branch>`` as a local ref, then ``origin/<branch>``
  2. diff that ref against HEAD
  3. if the ref cannot be resolved (or the diff fails), fall back to the
     working tree against the index, which is what ``git diff`` shows
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from codesage_core.errors import SourceUnavailable
from codesage_core.models import Change, ChangeKind, FileFilter
from codesage_core.utils.code import matches_filter
from codesage_core.utils.files import read_text

console = Console(stderr=True)
logger = logging.getLogger(__name__)

DIFF_UNAVAILABLE = "Diff not available"

_STATUS_KINDS = {
    "A": ChangeKind.ADDED,
    "C": ChangeKind.ADDED,  # copy: new path, new content
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,  # type change, e.g. file → symlink
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
}


def count_diff_lines(patch: str) -> tuple[int, int]:
    """Count added and removed lines in a unified diff.

    Only lines inside a hunk are counted, so the ``+++``/``---`` file headers
    are never mistaken for content, while an added line whose own text starts
    with ``++`` still is.
    """
    added = removed = 0
    in_hunk = False
    for line in patch.splitlines():
        if line.startswith("diff --git"):
            in_hunk = False
        elif line.startswith("@@"):
            in_hunk = True
        elif in_hunk and line.startswith("+"):
            added += 1
        elif in_hunk and line.startswith("-"):
            removed += 1
    return added, removed


def parse_name_status(output: str) -> list[tuple[ChangeKind, str, str | None]]:
    """Parse ``git diff --name-status`` output into (kind, path, old_path) tuples."""
    entries = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        status = parts[0][:1]
        kind = _STATUS_KINDS.get(status, ChangeKind.UNKNOWN)
        if status in ("R", "C") and len(parts) >= 3:
            entries.append((kind, parts[2], parts[1] if status == "R" else None))
        elif len(parts) >= 2:
            entries.append((kind, parts[1], None))
    return entries


class GitChangeSource:
    """Produces the ordered list of Changes a run will review."""

    def __init__(
        self,
        repo_path: str | Path = ".",
        file_filter: FileFilter | None = None,
        git_binary: str = "git",
        timeout: float = 30,
    ):
        self.repo_path = Path(repo_path)
        self.file_filter = file_filter or FileFilter()
        self.git_binary = git_binary
        self.timeout = timeout
        self._work_tree: Path | None = None

    @property
    def work_tree(self) -> Path:
        """Top level of the repository containing ``repo_path``.

        Every Change path is relative to this directory, which is where git
        prints paths from. Outside a repository it is ``repo_path`` itself.
        """
        if self._work_tree is None:
            try:
                top = self._run(self.repo_path, "rev-parse", "--show-toplevel").strip()
                self._work_tree = Path(top).resolve()
            except SourceUnavailable as e:
                logger.debug("Not inside a git work tree: %s", e)
                self._work_tree = self.repo_path.resolve()
        return self._work_tree

    def get_changes(self, branch: str | None = "main", files: Sequence[str] | None = None) -> list[Change]:
        """Return changes for an explicit file list, or for HEAD relative to ``branch``."""
        if files:
            return self._file_changes(files)

        try:
            target = self.resolve_ref(branch or "main")
        except SourceUnavailable as e:
            console.print(f"[yellow]{escape(str(e))} Reviewing working-tree changes instead.[/yellow]")
            return self._working_tree_changes()

        try:
            return self._diff_changes(target, "HEAD")
        except SourceUnavailable as e:
            logger.debug("Could not diff against %s: %s", branch, e)
            console.print(f"[yellow]Could not diff against {branch}. Reviewing working-tree changes instead.[/yellow]")
            return self._working_tree_changes()

    def resolve_ref(self, branch: str) -> str:
        """Return the commit SHA for ``branch`` or ``origin/<branch>``."""
        for candidate in (branch, f"origin/{branch}"):
            try:
                return self._git("rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}").strip()
            except SourceUnavailable:
                continue
        raise SourceUnavailable(f"Branch '{branch}' not found.")

    # ------------------------------------------------------------------ #
    # Change builders                                                     #
    # ------------------------------------------------------------------ #

    def _diff_changes(self, *revs: str) -> list[Change]:
        name_status = self._git("diff", "-M", "--name-status", *revs)
        changes = []
        for kind, path, old_path in parse_name_status(name_status):
            if not matches_filter(path, self.file_filter):
                logger.debug("Skipping %s (filtered out)", path)
                continue
            paths = [old_path, path] if old_path else [path]
            patch = self._patch(revs, paths)
            added, removed = count_diff_lines(patch)
            changes.append(
                Change(
                    path=path,
                    kind=kind,
                    diff=patch or DIFF_UNAVAILABLE,
                    content=read_text(self.work_tree / path),
                    lines_added=added,
                    lines_removed=removed,
                    old_path=old_path,
                )
            )
        return changes

    def _working_tree_changes(self) -> list[Change]:
        try:
            return self._diff_changes()
        except SourceUnavailable as e:
            console.print(f"[red]Could not read working-tree changes: {escape(str(e))}[/red]")
            return []

    def _file_changes(self, files: Sequence[str]) -> list[Change]:
        """Build Changes for explicitly named files: empty diff, full content.

        Files are named relative to ``repo_path``; the Change path is made
        relative to the work tree so it matches branch-diff paths.
        """
        changes = []
        for file in files:
            full_path = self.repo_path / file
            if not full_path.is_file():
                console.print(f"[yellow]Skipping {file}: file not found.[/yellow]")
                continue
            path = Path(os.path.relpath(full_path.resolve(), self.work_tree)).as_posix()
            if not matches_filter(path, self.file_filter):
                logger.debug("Skipping %s (filtered out)", path)
                continue
            changes.append(Change(path=path, kind=ChangeKind.MODIFIED, diff="", content=read_text(full_path)))
        return changes

    def _patch(self, revs: Sequence[str], paths: Sequence[str]) -> str:
        try:
            return self._git("diff", "-M", *revs, "--", *paths)
        except SourceUnavailable as e:
            logger.warning("Could not get diff for %s: %s", paths[-1], e)
            return ""

    def _git(self, *args: str) -> str:
        # Run from the top level so pathspecs match the root-relative paths git prints.
        return self._run(self.work_tree, *args)

    def _run(self, cwd: Path, *args: str) -> str:
        try:
            result = subprocess.run(
                [self.git_binary, "-c", "core.quotepath=false", *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (FileNotFoundError, NotADirectoryError, subprocess.TimeoutExpired) as e:
            raise SourceUnavailable(f"git {args[0]} failed: {e}") from e
        if result.returncode != 0:
            raise SourceUnavailable(f"git {' '.join(args)} failed: {result.stderr.strip()}")
        return result.stdout
