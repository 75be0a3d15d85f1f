"""Review result models and their on-disk JSON form."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path

MAX_SCORE = 3


@dataclass
class ReviewIssue:
    """One problem an agent found in a translation entry.

    ``score`` runs from 0 (critical) to 3 (fine / informational).
    """

    msgid: str
    msgstr: str = ""
    score: int = 0
    description: str = ""
    suggestion: str = ""


@dataclass
class ReviewJSONResult:
    total_entries: int = 0
    issues: list[ReviewIssue] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ReviewJSONResult:
        issues = [
            ReviewIssue(
                msgid=str(i.get("msgid", "")),
                msgstr=str(i.get("msgstr", "")),
                score=int(i.get("score", 0)),
                description=str(i.get("description", "")),
                suggestion=str(i.get("suggestion", "")),
            )
            for i in data.get("issues") or []
        ]
        return cls(total_entries=int(data.get("total_entries", 0)), issues=issues)


def dump_review_json(review: ReviewJSONResult) -> str:
    return json.dumps(review.to_dict(), indent=2, ensure_ascii=False) + "\n"


def save_review_json(review: ReviewJSONResult, path: str | Path) -> None:
    """Write a review as 2-space indented JSON with a trailing newline."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_review_json(review), encoding="utf-8")


def load_review_json(path: str | Path) -> ReviewJSONResult:
    """Read a saved review, tolerating the same damage as fresh agent output."""
    from poagent_core.review.repair import parse_review_json

    return parse_review_json(Path(path).read_bytes())
