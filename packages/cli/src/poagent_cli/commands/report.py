"""report command: score a saved review."""

from __future__ import annotations

import click

from poagent_core.review.repair import ReviewJSONError, ReviewValidationError
from poagent_core.review.score import ReviewScoreError
from poagent_core.reviewer import print_report, report_review


@click.command("report")
@click.argument("path")
def report_cmd(path: str):
    """Show the score of the review saved for PATH.

    PATH may be the PO file, its review JSON or their shared base name.
    """
    try:
        report = report_review(path)
    except FileNotFoundError as exc:
        raise click.UsageError(str(exc)) from exc
    except (ReviewJSONError, ReviewValidationError, ReviewScoreError) as exc:
        raise click.ClickException(str(exc)) from exc

    print_report(report)
