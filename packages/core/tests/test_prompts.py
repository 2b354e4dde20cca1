"""Tests for review and fix prompt construction."""

from codesage_core.models import Change, ChangeKind
from codesage_core.prompts import (
    FIX_SYSTEM_MESSAGE,
    NOT_AVAILABLE,
    build_fix_prompt,
    build_full_review_prompt,
    build_review_prompt,
    build_system_message,
)

DIFF = "@@ -1 +1 @@\n-puts 'hi'\n+puts 'hello'\n"


def make_change(**overrides):
    fields = {
        "path": "app/greeter.rb",
        "kind": ChangeKind.MODIFIED,
        "diff": DIFF,
        "content": "puts 'hello'\n",
        "lines_added": 1,
        "lines_removed": 1,
    }
    fields.update(overrides)
    return Change(**fields)


class TestSystemMessage:
    def test_lists_focus_areas(self):
        message = build_system_message(["security", "performance"])
        assert "- Security" in message
        assert "- Performance" in message

    def test_empty_focus_areas_fall_back(self):
        assert "- Code quality" in build_system_message([])

    def test_asks_for_structured_feedback(self):
        assert "structured format" in build_system_message()


class TestReviewPrompt:
    def test_contains_metadata(self):
        prompt = build_review_prompt(make_change(lines_added=4, lines_removed=2))
        assert "File: app/greeter.rb" in prompt
        assert "Change Type: modified" in prompt
        assert "Lines Added: 4" in prompt
        assert "Lines Removed: 2" in prompt

    def test_contains_diff_in_diff_fence(self):
        prompt = build_review_prompt(make_change())
        assert f"```diff\n{DIFF}\n```" in prompt

    def test_contains_content_with_language_tag(self):
        prompt = build_review_prompt(make_change())
        assert "```ruby\nputs 'hello'\n" in prompt

    def test_missing_content_marked_not_available(self):
        prompt = build_review_prompt(make_change(kind=ChangeKind.DELETED, content=None))
        assert NOT_AVAILABLE in prompt
        assert "Change Type: deleted" in prompt

    def test_empty_content_is_not_treated_as_missing(self):
        prompt = build_review_prompt(make_change(content=""))
        assert NOT_AVAILABLE not in prompt

    def test_rename_shows_old_path(self):
        prompt = build_review_prompt(make_change(kind=ChangeKind.RENAMED, old_path="lib/greeter.rb"))
        assert "Renamed From: lib/greeter.rb" in prompt

    def test_no_rename_line_for_plain_change(self):
        assert "Renamed From" not in build_review_prompt(make_change())

    def test_full_prompt_prefixes_system_message(self):
        prompt = build_full_review_prompt(make_change(), ["security"])
        assert prompt.startswith("You are CodeSage")
        assert "- Security" in prompt
        assert "File: app/greeter.rb" in prompt


class TestFixPrompt:
    def test_contains_review_and_content(self):
        prompt = build_fix_prompt("app/greeter.rb", "puts 'hi'\n", "Issue: greeting is too short")
        assert prompt.startswith(FIX_SYSTEM_MESSAGE)
        assert "File: app/greeter.rb" in prompt
        assert "Issue: greeting is too short" in prompt
        assert "puts 'hi'" in prompt
