"""Review scoring.

Every PO entry is worth MAX_SCORE points. An issue with score s costs
MAX_SCORE - s points, so a critical issue (0) costs 3 and an informational
one (3) costs nothing. The result is the share of points kept, 0..100.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from poagent_core.review.models import MAX_SCORE, ReviewJSONResult

logger = logging.getLogger(__name__)

SEVERITY_LABELS = {0: "critical", 1: "major", 2: "minor", 3: "info"}


class ReviewScoreError(ValueError):
    """The review cannot be scored because its data is inconsistent."""


@dataclass
class ReviewReport:
    review: ReviewJSONResult
    score: int
    critical: int = 0
    major: int = 0
    minor: int = 0
    info: int = 0

    @property
    def perfect(self) -> int:
        """Entries with no issue worse than informational."""
        return max(self.review.total_entries - (self.critical + self.major + self.minor), 0)


def calculate_review_score(review: ReviewJSONResult) -> int:
    """Return the 0..100 score of a review.

    Raises ReviewScoreError when an issue score is outside 0..3 or when
    issues are present but ``total_entries`` is not positive.
    """
    if review.total_entries <= 0:
        if not review.issues:
            # A review with no entries and no issues counts as perfect. This also
            # hides a caller that forgot to fill in the PO entry count.
            logger.debug("No entries and no issues, returning perfect score of 100")
            return 100
        raise ReviewScoreError(
            f"invalid review result: total_entries must be greater than 0, got {review.total_entries}"
        )

    possible = review.total_entries * MAX_SCORE
    kept = possible
    for index, issue in enumerate(review.issues):
        if not 0 <= issue.score <= MAX_SCORE:
            raise ReviewScoreError(f"invalid issue score {issue.score} at index {index}: must be between 0 and {MAX_SCORE}")
        kept -= MAX_SCORE - issue.score
    kept = max(kept, 0)

    # round half up, as integers
    score = (kept * 200 + possible) // (2 * possible)
    score = min(max(score, 0), 100)
    logger.debug("Review score %d/100 (kept=%d, possible=%d)", score, kept, possible)
    return score


def count_issue_scores(review: ReviewJSONResult) -> dict[str, int]:
    counts = {label: 0 for label in SEVERITY_LABELS.values()}
    for issue in review.issues:
        label = SEVERITY_LABELS.get(issue.score)
        if label:
            counts[label] += 1
    return counts


def build_report(review: ReviewJSONResult) -> ReviewReport:
    return ReviewReport(review=review, score=calculate_review_score(review), **count_issue_scores(review))
