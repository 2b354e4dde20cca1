"""Prompt construction for review and auto-fix requests.

Backends expose a single ask(prompt) call, so the system-role instruction is
prepended to the user prompt rather than sent as a separate message.
"""

from __future__ import annotations

from collections.abc import Sequence

from codesage_core.models import DEFAULT_FOCUS_AREAS, Change
from codesage_core.utils.code import language_for

NOT_AVAILABLE = "Not available"


def build_system_message(focus_areas: Sequence[str] = DEFAULT_FOCUS_AREAS) -> str:
    focus = "\n".join(f"- {area.strip().capitalize()}" for area in focus_areas) or "- Code quality"
    return f"""You are CodeSage, an expert code reviewer.

Your role is to:
1. Identify potential bugs, security issues, and performance problems
2. Suggest improvements for code readability and maintainability
3. Check for adherence to the language's best practices and conventions
4. Provide constructive feedback with specific examples
5. Highlight both positive aspects and areas for improvement

Focus on:
{focus}

Provide your feedback in a structured format with clear sections
(Summary, Issues, Suggestions, Positive aspects) and actionable suggestions."""


def build_review_prompt(change: Change) -> str:
    """Build the per-file prompt: metadata, diff, and the full file when it still exists."""
    language = language_for(change.path)
    renamed_from = f"Renamed From: {change.old_path}\n" if change.old_path else ""
    return f"""Please review the following code changes:

File: {change.path}
{renamed_from}Change Type: {change.kind.value}
Lines Added: {change.lines_added}
Lines Removed: {change.lines_removed}

Code Diff:
```diff
{change.diff}
```

Full File Context (if available):
```{language}
{change.content if change.content is not None else NOT_AVAILABLE}
```

Please provide a comprehensive review focusing on:
1. Code quality and best practices
2. Potential bugs or issues
3. Security considerations
4. Performance implications
5. Suggestions for improvement

Format your response as structured feedback with clear sections."""


def build_full_review_prompt(change: Change, focus_areas: Sequence[str] = DEFAULT_FOCUS_AREAS) -> str:
    return f"{build_system_message(focus_areas)}\n\n{build_review_prompt(change)}"


FIX_SYSTEM_MESSAGE = """You are CodeSage, an expert software engineer applying code review feedback.

Rewrite the file below so that it addresses the review. Respond with ONLY the
complete corrected source code of the file. Do not include explanations,
comments about the changes, or markdown code fences. If nothing needs to
change, return the file exactly as given."""


def build_fix_prompt(path: str, content: str, review_text: str) -> str:
    return f"""{FIX_SYSTEM_MESSAGE}

File: {path}

Review feedback:
{review_text}

Current file content:
{content}"""
