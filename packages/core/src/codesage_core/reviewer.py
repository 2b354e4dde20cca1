"""Per-file review orchestration.

One backend round-trip per Change, strictly in input order. A file whose
review fails is reported and dropped. It never aborts the run and is never
retried here (retries are the backend's business).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape

from codesage_core.errors import BackendInvocationFailed
from codesage_core.models import DEFAULT_FOCUS_AREAS, Change, Review
from codesage_core.prompts import build_full_review_prompt
from codesage_core.providers.base import BaseBackend

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def review_change(
    change: Change,
    backend: BaseBackend,
    focus_areas: Sequence[str] = DEFAULT_FOCUS_AREAS,
) -> Review:
    """Ask the backend to review one Change.

    Raises BackendInvocationFailed on any backend error so the caller decides
    what a failure means for the run.
    """
    prompt = build_full_review_prompt(change, focus_areas)
    invoked_at = datetime.now(timezone.utc)
    try:
        text = backend.ask(prompt)
    except BackendInvocationFailed:
        raise
    except Exception as e:
        # Test doubles and third-party backends may raise anything.
        raise BackendInvocationFailed(f"{type(e).__name__}: {e}") from e
    return Review(
        path=change.path,
        change_kind=change.kind,
        lines_added=change.lines_added,
        lines_removed=change.lines_removed,
        review_text=text,
        created_at=invoked_at,
    )


def review_changes(
    changes: Sequence[Change],
    backend: BaseBackend,
    focus_areas: Sequence[str] = DEFAULT_FOCUS_AREAS,
) -> list[Review]:
    """Review every Change in order and return the Reviews that succeeded."""
    reviews: list[Review] = []
    total = len(changes)

    for i, change in enumerate(changes, 1):
        console.print(f"[{i}/{total}] Reviewing: {escape(change.path)}")
        try:
            reviews.append(review_change(change, backend, focus_areas))
        except BackendInvocationFailed as e:
            logger.debug("Review failed for %s: %s", change.path, e)
            console.print(f"  [red]Error reviewing {escape(change.path)}: {escape(str(e))}[/red]")

    dropped = total - len(reviews)
    if dropped:
        console.print(f"[yellow]{dropped} of {total} file(s) could not be reviewed.[/yellow]")
    return reviews
