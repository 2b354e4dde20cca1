"""Tests for change extraction from git.

Most tests replace GitChangeSource._git with a fake so they run without a
repository; the last two classes drive a real throwaway repo when git is
installed.
"""

import shutil
import subprocess

import pytest

from codesage_core.errors import SourceUnavailable
from codesage_core.models import BackendConfig, ChangeKind, FileFilter, FixStatus, ReviewConfig
from codesage_core.pipeline import ReviewPipeline
from codesage_core.providers.base import BaseBackend
from codesage_core.vcs.git import DIFF_UNAVAILABLE, GitChangeSource, count_diff_lines, parse_name_status

PATCH = (
    "diff --git a/app/user.rb b/app/user.rb\n"
    "--- a/app/user.rb\n"
    "+++ b/app/user.rb\n"
    "@@ -1,3 +1,4 @@\n"
    " class User\n"
    "-  attr_reader :name\n"
    "+  attr_reader :name, :email\n"
    "+  validates :email, presence: true\n"
    " end\n"
)


def fake_git(name_status="M\tapp/user.rb\n", refs=("main",), patch=PATCH):
    """Build a _git replacement: resolves the given refs, fails for anything else."""
    calls = []

    def _git(*args):
        calls.append(args)
        if args[0] == "rev-parse":
            ref = args[-1].removesuffix("^{commit}")
            if ref in refs:
                return f"sha-{ref}\n"
            raise SourceUnavailable(f"unknown ref {ref}")
        if "--name-status" in args:
            return name_status
        return patch

    return _git, calls


class _ScriptedBackend(BaseBackend):
    """Returns the given responses in order."""

    def __init__(self, *responses):
        super().__init__(BackendConfig(provider="stub"))
        self.responses = list(responses)

    def ask(self, prompt: str) -> str:
        return self.responses.pop(0)

    def _call_api(self, prompt: str) -> str | None:
        raise NotImplementedError


class TestCountDiffLines:
    def test_counts_hunk_lines_only(self):
        assert count_diff_lines(PATCH) == (2, 1)

    def test_added_line_starting_with_plus_plus_is_counted(self):
        patch = "--- a/x\n+++ b/x\n@@ -0,0 +1 @@\n+++counter\n"
        assert count_diff_lines(patch) == (1, 0)

    def test_empty_patch(self):
        assert count_diff_lines("") == (0, 0)


class TestParseNameStatus:
    def test_statuses(self):
        output = "M\ta.rb\nA\tb.rb\nD\tc.rb\nT\td.rb\nX\te.rb\n"
        assert parse_name_status(output) == [
            (ChangeKind.MODIFIED, "a.rb", None),
            (ChangeKind.ADDED, "b.rb", None),
            (ChangeKind.DELETED, "c.rb", None),
            (ChangeKind.MODIFIED, "d.rb", None),
            (ChangeKind.UNKNOWN, "e.rb", None),
        ]

    def test_rename_keeps_old_path(self):
        assert parse_name_status("R087\told.rb\tnew.rb\n") == [(ChangeKind.RENAMED, "new.rb", "old.rb")]

    def test_copy_is_added_without_old_path(self):
        assert parse_name_status("C100\tsrc.rb\tcopy.rb\n") == [(ChangeKind.ADDED, "copy.rb", None)]

    def test_blank_lines_ignored(self):
        assert parse_name_status("\n\n") == []


class TestBranchChanges:
    def test_diff_against_branch(self, mocker, tmp_path):
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "user.rb").write_text("class User\nend\n")
        _git, calls = fake_git()
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        changes = GitChangeSource(tmp_path).get_changes("main")

        assert len(changes) == 1
        change = changes[0]
        assert change.path == "app/user.rb"
        assert change.kind == ChangeKind.MODIFIED
        assert change.diff == PATCH
        assert change.content == "class User\nend\n"
        assert (change.lines_added, change.lines_removed) == (2, 1)
        assert ("diff", "-M", "--name-status", "sha-main", "HEAD") in calls
        assert ("diff", "-M", "sha-main", "HEAD", "--", "app/user.rb") in calls

    def test_falls_back_to_origin_branch(self, mocker, tmp_path):
        _git, calls = fake_git(refs=("origin/main",))
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        GitChangeSource(tmp_path).get_changes("main")

        assert ("diff", "-M", "--name-status", "sha-origin/main", "HEAD") in calls

    def test_missing_branch_falls_back_to_working_tree(self, mocker, tmp_path):
        _git, calls = fake_git(refs=())
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        changes = GitChangeSource(tmp_path).get_changes("does-not-exist")

        assert [c.path for c in changes] == ["app/user.rb"]
        assert ("diff", "-M", "--name-status") in calls

    def test_working_tree_failure_returns_empty(self, mocker, tmp_path):
        def _git(*args):
            raise SourceUnavailable("not a git repository")

        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)
        assert GitChangeSource(tmp_path).get_changes("main") == []

    def test_deleted_file_has_no_content(self, mocker, tmp_path):
        _git, _ = fake_git(name_status="D\tapp/gone.rb\n")
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        [change] = GitChangeSource(tmp_path).get_changes("main")
        assert change.kind == ChangeKind.DELETED
        assert change.content is None

    def test_rename_diffs_both_paths(self, mocker, tmp_path):
        _git, calls = fake_git(name_status="R095\told.rb\tnew.rb\n")
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        [change] = GitChangeSource(tmp_path).get_changes("main")
        assert change.kind == ChangeKind.RENAMED
        assert change.old_path == "old.rb"
        assert ("diff", "-M", "sha-main", "HEAD", "--", "old.rb", "new.rb") in calls

    def test_empty_patch_uses_placeholder(self, mocker, tmp_path):
        _git, _ = fake_git(patch="")
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        [change] = GitChangeSource(tmp_path).get_changes("main")
        assert change.diff == DIFF_UNAVAILABLE
        assert (change.lines_added, change.lines_removed) == (0, 0)

    def test_filter_applied(self, mocker, tmp_path):
        _git, _ = fake_git(name_status="M\tapp/user.rb\nM\tassets/logo.png\nM\tspec/user_spec.rb\n")
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        source = GitChangeSource(tmp_path, FileFilter(exclude=("spec/",)))
        assert [c.path for c in source.get_changes("main")] == ["app/user.rb"]

    def test_order_follows_git_output(self, mocker, tmp_path):
        _git, _ = fake_git(name_status="M\tb.rb\nA\ta.rb\nM\tc.rb\n")
        mocker.patch.object(GitChangeSource, "_git", side_effect=_git)

        assert [c.path for c in GitChangeSource(tmp_path).get_changes("main")] == ["b.rb", "a.rb", "c.rb"]


class TestExplicitFiles:
    def test_files_reviewed_with_full_content(self, mocker, tmp_path):
        (tmp_path / "a.rb").write_text("puts 1\n")
        git = mocker.patch.object(GitChangeSource, "_git")

        [change] = GitChangeSource(tmp_path).get_changes("main", files=["a.rb"])

        assert change.kind == ChangeKind.MODIFIED
        assert change.diff == ""
        assert change.content == "puts 1\n"
        assert (change.lines_added, change.lines_removed) == (0, 0)
        git.assert_not_called()

    def test_missing_files_skipped(self, tmp_path):
        (tmp_path / "a.rb").write_text("puts 1\n")
        changes = GitChangeSource(tmp_path).get_changes(files=["missing.rb", "a.rb"])
        assert [c.path for c in changes] == ["a.rb"]


class TestGitCommand:
    def test_missing_binary_raises_source_unavailable(self, tmp_path):
        source = GitChangeSource(tmp_path, git_binary="definitely-not-git-xyz")
        with pytest.raises(SourceUnavailable):
            source._git("status")

    def test_nonzero_exit_raises_source_unavailable(self, mocker, tmp_path):
        mocker.patch(
            "codesage_core.vcs.git.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="fatal: bad"),
        )
        with pytest.raises(SourceUnavailable, match="fatal: bad"):
            GitChangeSource(tmp_path)._git("diff")

    def test_work_tree_falls_back_outside_a_repository(self, mocker, tmp_path):
        mocker.patch(
            "codesage_core.vcs.git.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="not a git repository"),
        )
        assert GitChangeSource(tmp_path).work_tree == tmp_path.resolve()

    def test_timeout_raises_source_unavailable(self, mocker, tmp_path):
        mocker.patch(
            "codesage_core.vcs.git.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="git", timeout=1),
        )
        with pytest.raises(SourceUnavailable):
            GitChangeSource(tmp_path)._git("diff")


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestRealRepository:
    @staticmethod
    def _run(repo, *args):
        subprocess.run(
            [
                "git",
                "-c",
                "user.name=Test",
                "-c",
                "user.email=test@example.com",
                "-c",
                "commit.gpgsign=false",
                *args,
            ],
            cwd=repo,
            check=True,
            capture_output=True,
        )

    @pytest.fixture
    def repo(self, tmp_path):
        self._run(tmp_path, "init")
        self._run(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
        (tmp_path / "app.py").write_text("def greet():\n    return 'hi'\n")
        self._run(tmp_path, "add", ".")
        self._run(tmp_path, "commit", "-m", "initial")
        return tmp_path

    def test_branch_diff(self, repo):
        self._run(repo, "checkout", "-b", "feature")
        (repo / "app.py").write_text("def greet(name):\n    return f'hi {name}'\n")
        (repo / "new.py").write_text("VALUE = 1\n")
        self._run(repo, "add", ".")
        self._run(repo, "commit", "-m", "feature work")

        changes = GitChangeSource(repo).get_changes("main")

        by_path = {c.path: c for c in changes}
        assert set(by_path) == {"app.py", "new.py"}
        assert by_path["app.py"].kind == ChangeKind.MODIFIED
        assert (by_path["app.py"].lines_added, by_path["app.py"].lines_removed) == (2, 2)
        assert by_path["new.py"].kind == ChangeKind.ADDED
        assert by_path["new.py"].content == "VALUE = 1\n"

    def test_unknown_branch_reviews_working_tree(self, repo):
        (repo / "app.py").write_text("def greet():\n    return 'hello'\n")

        [change] = GitChangeSource(repo).get_changes("no-such-branch")

        assert change.path == "app.py"
        assert (change.lines_added, change.lines_removed) == (1, 1)

    def test_no_changes(self, repo):
        assert GitChangeSource(repo).get_changes("main") == []


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestSubdirectory:
    """Paths git prints are root-relative even when run from inside a subdirectory."""

    _run = staticmethod(TestRealRepository._run)

    @pytest.fixture
    def repo(self, tmp_path):
        self._run(tmp_path, "init")
        self._run(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "x.py").write_text("VALUE = 1\n")
        self._run(tmp_path, "add", ".")
        self._run(tmp_path, "commit", "-m", "initial")
        return tmp_path

    def test_work_tree_is_repository_root(self, repo):
        assert GitChangeSource(repo / "app").work_tree == repo.resolve()

    def test_working_tree_changes(self, repo):
        (repo / "app" / "x.py").write_text("VALUE = 1\nOTHER = 2\nTHIRD = 3\n")

        [change] = GitChangeSource(repo / "app").get_changes(branch="nope")

        assert change.path == "app/x.py"
        assert change.kind == ChangeKind.MODIFIED
        assert change.content == "VALUE = 1\nOTHER = 2\nTHIRD = 3\n"
        assert (change.lines_added, change.lines_removed) == (2, 0)
        assert "+OTHER = 2" in change.diff

    def test_branch_diff(self, repo):
        self._run(repo, "checkout", "-b", "feature")
        (repo / "app" / "x.py").write_text("VALUE = 2\n")
        self._run(repo, "commit", "-am", "bump")

        [change] = GitChangeSource(repo / "app").get_changes("main")

        assert change.path == "app/x.py"
        assert change.content == "VALUE = 2\n"
        assert (change.lines_added, change.lines_removed) == (1, 1)

    def test_explicit_files_are_root_relative(self, repo):
        [change] = GitChangeSource(repo / "app").get_changes(files=["x.py"])
        assert change.path == "app/x.py"
        assert change.content == "VALUE = 1\n"

    def test_auto_fix_writes_the_right_file(self, repo):
        (repo / "app" / "x.py").write_text("VALUE = 1\nvalue = 2\n")
        backend = _ScriptedBackend("one issue: inconsistent naming", "VALUE = 1\nOTHER = 2")
        config = ReviewConfig(branch="nope", auto_fix_enabled=True, confirm_before_fix=False, create_backups=False)

        outcome = ReviewPipeline(
            config, backend=backend, source=GitChangeSource(repo / "app", timeout=10)
        ).run()

        assert [f.status for f in outcome.fixes] == [FixStatus.WRITTEN]
        assert (repo / "app" / "x.py").read_text() == "VALUE = 1\nOTHER = 2\n"
        assert not (repo / "app" / "app").exists()
