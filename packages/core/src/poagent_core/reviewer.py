"""Core translation review orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.table import Table

from poagent_core.agent.command import build_agent_command, replace_placeholders
from poagent_core.agent.runner import run_agent
from poagent_core.config import load_prompt, select_agent
from poagent_core.diagnostics import print_agent_diagnostics
from poagent_core.review.aggregate import aggregate_reviews
from poagent_core.review.models import ReviewJSONResult, load_review_json, save_review_json
from poagent_core.review.repair import ReviewJSONError, ReviewValidationError, parse_review_json, validate_review
from poagent_core.review.score import ReviewReport, build_report
from poagent_core.stream.display import DisplayLimits, TracePrinter
from poagent_core.stream.parser import MAX_LINE_BYTES
from poagent_core.utils.po import count_po_entries, derive_review_paths

console = Console()
logger = logging.getLogger(__name__)

_SCORE_STYLE = ((90, "green"), (70, "yellow"), (0, "red"))


@dataclass
class ReviewSummary:
    """Result returned by run_review: carries enough data for the CLI to persist history.

    Decoupled from poagent_store so poagent_core has no dependency on the store layer.
    The CLI converts this to a ReviewRecord before persisting.
    """

    po_file: str
    agent: str
    score: int
    total_entries: int
    review_file: str
    runs: int = 1
    critical: int = 0
    major: int = 0
    minor: int = 0
    num_turns: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def run_file_path(review_path: Path, run: int) -> Path:
    return review_path.with_name(f"{review_path.stem}-run-{run}.json")


def _run_files(review_path: Path) -> list[Path]:
    files = review_path.parent.glob(f"{review_path.stem}-run-*.json")
    # natural order: run-2 before run-10
    return sorted(files, key=lambda p: (len(p.name), p.name))


def run_review(
    po_file: str,
    config: dict,
    agent_name: str | None = None,
    runs: int | None = None,
    output: str | None = None,
    commit: str | None = None,
) -> ReviewSummary:
    """Review a PO file with an agent ``runs`` times and score the merged result.

    Each run's review is saved next to the output as ``<name>-run-<n>.json``;
    the merged review is saved to the output path (``<po base>.json`` by
    default). The PO file's own entry count is used as total_entries.
    """
    po_path = Path(po_file)
    if not po_path.exists():
        raise FileNotFoundError(f"PO file not found: {po_file}")

    runs = runs if runs is not None else int(config.get("runs") or 1)
    if runs < 1:
        raise ValueError(f"runs must be at least 1, got {runs}")

    agent = select_agent(config, agent_name)
    review_path = Path(output) if output else derive_review_paths(po_path)[0]
    total_entries = count_po_entries(po_path)

    values = {"source": str(po_path), "commit": commit or "HEAD"}
    values["prompt"] = replace_placeholders(load_prompt(config, "review"), values)
    cmd = build_agent_command(agent, values)

    printer = TracePrinter(console=console, limits=DisplayLimits.from_config(config.get("display")))
    max_line_bytes = int(config.get("max_line_bytes") or MAX_LINE_BYTES)

    console.print(f"[bold]Reviewing {po_path} ({total_entries} entries) with agent '{agent.name}'[/bold]")

    reviews: list[ReviewJSONResult] = []
    num_turns = input_tokens = output_tokens = 0
    for run in range(1, runs + 1):
        if runs > 1:
            console.print(f"\n[bold cyan]Run {run}/{runs}[/bold cyan]")
        outcome = run_agent(cmd, agent.kind, streaming=agent.streaming, printer=printer, max_line_bytes=max_line_bytes)
        print_agent_diagnostics(outcome.result, console)

        if outcome.result is not None:
            num_turns += outcome.result.get_num_turns()
            if outcome.result.usage is not None:
                input_tokens += outcome.result.usage.input_tokens
                output_tokens += outcome.result.usage.output_tokens

        text = outcome.result.result_text if outcome.result is not None and outcome.result.result_text else outcome.content
        try:
            review = validate_review(parse_review_json(text))
        except (ReviewJSONError, ReviewValidationError) as exc:
            logger.error("Run %d produced no usable review: %s", run, exc)
            continue

        run_path = run_file_path(review_path, run)
        save_review_json(review, run_path)
        logger.debug("Saved run %d review to %s", run, run_path)
        reviews.append(review)

    merged = aggregate_reviews(reviews, total_entries=total_entries)
    if merged is None:
        raise ReviewJSONError(f"none of the {runs} agent run(s) produced a usable review")

    save_review_json(merged, review_path)
    report = build_report(merged)
    print_report(report, review_path)

    return ReviewSummary(
        po_file=str(po_path),
        agent=agent.name,
        score=report.score,
        total_entries=merged.total_entries,
        review_file=str(review_path),
        runs=runs,
        critical=report.critical,
        major=report.major,
        minor=report.minor,
        num_turns=num_turns,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def report_review(path: str) -> ReviewReport:
    """Score a saved review.

    ``path`` may name the PO file, the review JSON or their shared base. When
    ``<base>-run-*.json`` files are newer than ``<base>.json`` they are merged
    again and the result saved to ``<base>.json`` first. total_entries always
    comes from the PO file.
    """
    review_path, po_path = derive_review_paths(path)
    run_files = _run_files(review_path)

    rebuilt = bool(run_files) and (
        not review_path.exists() or max(f.stat().st_mtime for f in run_files) > review_path.stat().st_mtime
    )
    if rebuilt:
        logger.info("Merging %d run file(s) into %s", len(run_files), review_path)
        review = aggregate_reviews([load_review_json(f) for f in run_files], warn_duplicates=True)
    else:
        if not review_path.exists():
            raise FileNotFoundError(f"Review file not found: {review_path}")
        review = load_review_json(review_path)

    if not po_path.exists():
        raise FileNotFoundError(f"PO file not found: {po_path}")
    review.total_entries = count_po_entries(po_path)

    if rebuilt:
        save_review_json(review, review_path)
    return build_report(review)


def print_report(report: ReviewReport, review_path: Path | str | None = None, out: Console | None = None) -> None:
    out = out or console
    style = next(s for threshold, s in _SCORE_STYLE if report.score >= threshold)

    table = Table(title="Review Report", show_header=True, header_style="bold cyan")
    table.add_column("Severity", style="bold")
    table.add_column("Entries", justify="right")
    table.add_row("[red]Critical (0)[/red]", str(report.critical))
    table.add_row("[yellow]Major (1)[/yellow]", str(report.major))
    table.add_row("[blue]Minor (2)[/blue]", str(report.minor))
    table.add_row("[green]Perfect[/green]", str(report.perfect))
    table.add_row("Total", str(report.review.total_entries))

    out.print()
    out.print(table)
    out.print(f"[bold]Score:[/bold] [{style}]{report.score}/100[/{style}]")
    if review_path is not None:
        out.print(f"[dim]Review saved in {review_path}[/dim]")
