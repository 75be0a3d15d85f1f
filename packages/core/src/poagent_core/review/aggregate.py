"""Merge review results from several agent runs."""

from __future__ import annotations

import logging
from typing import Iterable

from poagent_core.review.models import ReviewIssue, ReviewJSONResult

logger = logging.getLogger(__name__)


def aggregate_reviews(
    reviews: Iterable[ReviewJSONResult | None],
    total_entries: int | None = None,
    warn_duplicates: bool = False,
) -> ReviewJSONResult | None:
    """Merge reviews by msgid, keeping the most severe (lowest score) issue.

    ``total_entries`` is the ground-truth entry count from the PO file; when
    it is None the first non-zero count among the inputs is used. Issues keep
    the order in which their msgid was first seen. Returns None when there is
    no review to merge.
    """
    present = [r for r in reviews if r is not None]
    if not present:
        return None

    merged: dict[str, ReviewIssue] = {}
    first_total = 0
    for review in present:
        if review.total_entries > 0 and first_total == 0:
            first_total = review.total_entries
        for issue in review.issues:
            existing = merged.get(issue.msgid)
            if existing is not None and warn_duplicates:
                logger.warning("Duplicate msgid in review issues: %r (reported by more than one run)", issue.msgid)
            if existing is None or issue.score < existing.score:
                merged[issue.msgid] = issue

    total = total_entries if total_entries is not None else first_total
    return ReviewJSONResult(total_entries=total, issues=list(merged.values()))
