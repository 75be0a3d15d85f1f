"""Recover review JSON from LLM output.

Agents are asked to reply with a bare JSON object but often wrap it in a
markdown fence, prepend a BOM or some prose, or break the syntax outright.
parse_review_json() tries three stages in order and returns the first
success:

    1. strict:   json.loads + schema check
    2. prepared: strip BOM and code fence, cut out the first balanced {...}
    3. lenient:  pull total_entries and each issue's fields out with regexes

Only when all three fail is a ReviewJSONError raised. The raw payload is
logged at debug level only.
"""

from __future__ import annotations

import json
import logging
import re

from poagent_core.review.models import MAX_SCORE, ReviewIssue, ReviewJSONResult

logger = logging.getLogger(__name__)

_HINT = "LLM output may have invalid characters or structure; ensure the JSON is valid"
_STRING_FIELDS = ("msgid", "msgstr", "description", "suggestion")


class ReviewJSONError(ValueError):
    """Review output could not be turned into a ReviewJSONResult."""


class ReviewValidationError(ValueError):
    """A parsed review contains an issue that breaks the review contract."""


# ---------------------------------------------------------------------- #
# Public interface                                                        #
# ---------------------------------------------------------------------- #


def parse_review_json(data: str | bytes) -> ReviewJSONResult:
    """Parse review JSON produced by an agent, repairing it where possible."""
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    if not text.strip():
        raise ReviewJSONError("empty review JSON data")

    try:
        return _strict(text)
    except ValueError as exc:
        logger.warning("Review JSON is not clean (%s); removing BOM, code fence and surrounding text.", exc)

    prepared = prepare_json_text(text)
    try:
        return _strict(prepared)
    except ValueError as exc:
        logger.warning("Review JSON still invalid after cleanup (%s); falling back to lenient extraction.", exc)
        last_error = exc

    logger.debug("Raw review payload:\n%s", text)
    review = _lenient(prepared)
    if review is None:
        raise ReviewJSONError(f"failed to parse review JSON: {last_error} (hint: {_HINT})")
    logger.info("Recovered review JSON leniently: total_entries=%d, issues=%d", review.total_entries, len(review.issues))
    return review


def prepare_json_text(text: str) -> str:
    """Strip a BOM and markdown code fence, then cut out the first JSON object."""
    text = text.strip().lstrip("\ufeff").strip()
    start = text.find("```")
    if start >= 0:
        text = text[start + 3 :]
        if text.startswith("json"):
            text = text[4:].strip()
        end = text.find("```")
        if end >= 0:
            text = text[:end].strip()
    extracted = extract_json_object(text)
    return extracted if extracted is not None else text


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in text, or None."""
    start = text.find("{")
    if start < 0:
        return None
    end = _match_close(text, start, "{", "}")
    if end < 0:
        return None
    return text[start : end + 1]


def validate_review(review: ReviewJSONResult) -> ReviewJSONResult:
    """Check every issue has a score in 0..3 and a description."""
    for index, issue in enumerate(review.issues):
        if not 0 <= issue.score <= MAX_SCORE:
            raise ReviewValidationError(
                f"invalid issue score {issue.score} at index {index}: must be between 0 and {MAX_SCORE}"
            )
        if not issue.description:
            raise ReviewValidationError(f"invalid issue at index {index}: description is required")
    return review


# ---------------------------------------------------------------------- #
# Stages                                                                  #
# ---------------------------------------------------------------------- #


def _strict(text: str) -> ReviewJSONResult:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")

    total = data.get("total_entries", 0)
    if total is None:
        total = 0
    if not _is_int(total):
        raise ValueError("total_entries must be an integer")

    raw_issues = data.get("issues")
    if raw_issues is None:
        raw_issues = []
    if not isinstance(raw_issues, list):
        raise ValueError("issues must be an array")

    issues = []
    for index, item in enumerate(raw_issues):
        if not isinstance(item, dict):
            raise ValueError(f"issues[{index}] must be an object")
        values = {}
        for key in _STRING_FIELDS:
            value = item.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"issues[{index}].{key} must be a string")
            values[key] = value or ""
        score = item.get("score", 0)
        if score is None:
            score = 0
        if not _is_int(score):
            raise ValueError(f"issues[{index}].score must be an integer")
        issues.append(ReviewIssue(score=score, **values))
    return ReviewJSONResult(total_entries=total, issues=issues)


def _lenient(text: str) -> ReviewJSONResult | None:
    total_match = re.search(r'"total_entries"\s*:?\s*(-?\d+)', text)
    total = int(total_match.group(1)) if total_match else 0

    issues_match = re.search(r'"issues"\s*:?\s*\[', text)
    if issues_match is None:
        if total == 0:
            return None
        return ReviewJSONResult(total_entries=total, issues=[])

    start = issues_match.end() - 1
    end = _match_close(text, start, "[", "]")
    body = text[start + 1 : end if end >= 0 else len(text)]
    issues = [issue for issue in map(_lenient_issue, _objects(body)) if issue is not None]
    return ReviewJSONResult(total_entries=total, issues=issues)


def _lenient_issue(text: str) -> ReviewIssue | None:
    values: dict = {}
    for key in _STRING_FIELDS:
        match = re.search(rf'"{key}"\s*:?\s*"((?:[^"\\]|\\.)*)"', text, re.DOTALL)
        if match:
            values[key] = _unescape(match.group(1))
    score = re.search(r'"score"\s*:?\s*(-?\d+)', text)
    if score:
        values["score"] = int(score.group(1))
    if not values:
        return None
    values.setdefault("msgid", "")
    return ReviewIssue(**values)


# ---------------------------------------------------------------------- #
# Helpers                                                                 #
# ---------------------------------------------------------------------- #


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"', strict=False)
    except ValueError:
        # keep the text as written when the escapes themselves are broken
        return raw


def _match_close(text: str, start: int, open_char: str, close_char: str) -> int:
    """Index of the bracket closing the one at ``start``, ignoring brackets in strings; -1 if unbalanced."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return index
    return -1


def _objects(body: str) -> list[str]:
    """Split the inside of a JSON array into its top-level ``{...}`` chunks."""
    chunks = []
    position = 0
    while True:
        start = body.find("{", position)
        if start < 0:
            return chunks
        end = _match_close(body, start, "{", "}")
        if end < 0:
            chunks.append(body[start:])
            return chunks
        chunks.append(body[start : end + 1])
        position = end + 1
