"""Reduce a list of Reviews into a Report.

The issue detection here is a plain substring check on the model's free text:
"issue" or "problem", case-sensitive. It over-counts: a review saying "no
issues found" is flagged.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from codesage_core.models import Report, ReportMetrics, ReportSummary, Review

ISSUE_MARKERS = ("issue", "problem")

# Static for now; the field's type is the contract, not these values.
DEFAULT_RECOMMENDATIONS = (
    "Review suggested improvements for each file",
    "Consider adding or updating tests for modified code",
    "Ensure all security recommendations are addressed",
)


def has_issues(review: Review) -> bool:
    return any(marker in review.review_text for marker in ISSUE_MARKERS)


def build_summary(reviews: Sequence[Review]) -> ReportSummary:
    return ReportSummary(
        total_reviewed=len(reviews),
        files_with_issues=sum(1 for r in reviews if has_issues(r)),
        total_lines_changed=sum(r.lines_changed for r in reviews),
    )


def build_metrics(reviews: Sequence[Review]) -> ReportMetrics:
    total_lines = sum(r.lines_changed for r in reviews)
    counts = Counter(r.change_kind.value for r in reviews)
    return ReportMetrics(
        avg_lines_per_file=total_lines / len(reviews) if reviews else 0,
        counts_by_kind=dict(counts),
    )


def build_recommendations(reviews: Sequence[Review]) -> list[str]:
    return list(DEFAULT_RECOMMENDATIONS)


def aggregate(reviews: Sequence[Review]) -> Report:
    reviews = list(reviews)
    return Report(
        summary=build_summary(reviews),
        metrics=build_metrics(reviews),
        reviews=reviews,
        recommendations=build_recommendations(reviews),
    )
