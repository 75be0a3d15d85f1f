"""Review history data models.

Decoupled from poagent_core so the store layer can be used independently
and poagent_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ReviewRecord:
    """A completed translation review persisted to the store.

    Created by the CLI layer after run_review() returns a ReviewSummary.
    The CLI maps ReviewSummary → ReviewRecord before calling store.save().
    """

    po_file: str
    agent: str
    reviewed_at: str  # ISO-8601 UTC timestamp
    score: int
    total_entries: int
    critical: int = 0
    major: int = 0
    minor: int = 0
    runs: int = 1
    num_turns: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    review_file: str = ""
