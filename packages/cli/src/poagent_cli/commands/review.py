"""review command: run an agent review of a PO file."""

from __future__ import annotations

import click

from poagent_core.agent.runner import AgentCommandError
from poagent_core.review.repair import ReviewJSONError
from poagent_core.review.score import ReviewScoreError
from poagent_core.reviewer import ReviewSummary, run_review
from poagent_store.models import ReviewRecord


def _summary_to_record(summary: ReviewSummary) -> ReviewRecord:
    """Map a ReviewSummary returned by run_review() to a ReviewRecord for the store.

    The CLI layer owns this mapping: poagent_core has no store knowledge and
    poagent_store has no core knowledge.
    """
    return ReviewRecord(
        po_file=summary.po_file,
        agent=summary.agent,
        reviewed_at=summary.reviewed_at,
        score=summary.score,
        total_entries=summary.total_entries,
        critical=summary.critical,
        major=summary.major,
        minor=summary.minor,
        runs=summary.runs,
        num_turns=summary.num_turns,
        input_tokens=summary.input_tokens,
        output_tokens=summary.output_tokens,
        review_file=summary.review_file,
    )


@click.command("review")
@click.argument("po_file", type=click.Path(dir_okay=False))
@click.option("--agent", "agent_name", default=None, help="Agent name from the config. Defaults to default_agent.")
@click.option("--runs", type=click.IntRange(min=1), default=None, help="Number of review runs to merge.")
@click.option("--output", "-o", default=None, help="Where to write the merged review JSON.")
@click.option("--commit", default=None, help="Commit substituted for {commit} in the prompt. Defaults to HEAD.")
@click.pass_context
def review_cmd(
    ctx,
    po_file: str,
    agent_name: str | None,
    runs: int | None,
    output: str | None,
    commit: str | None,
):
    """Review the translations in PO_FILE with a coding agent.

    The agent's streamed output is shown live. Each run's review is saved as
    <name>-run-<n>.json; the runs are merged (lowest score per msgid wins)
    into <name>.json and scored out of 100.
    """
    config = ctx.obj["config"]

    try:
        summary = run_review(po_file, config, agent_name=agent_name, runs=runs, output=output, commit=commit)
    except (AgentCommandError, ReviewJSONError, ReviewScoreError) as exc:
        raise click.ClickException(str(exc)) from exc
    except (FileNotFoundError, ValueError) as exc:
        raise click.UsageError(str(exc)) from exc

    store = ctx.obj.get("store")
    if store is not None:
        store.save(_summary_to_record(summary))
