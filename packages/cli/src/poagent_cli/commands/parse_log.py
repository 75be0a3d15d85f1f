"""parse-log command: replay a saved agent stream log."""

from __future__ import annotations

import click
from rich.console import Console

from poagent_core.diagnostics import print_agent_diagnostics
from poagent_core.stream.display import DisplayLimits, TracePrinter
from poagent_core.stream.parser import MAX_LINE_BYTES
from poagent_core.stream.registry import DECODERS, detect_kind, get_parser

console = Console()


def _first_line(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            if line.strip():
                return line
    return ""


@click.command("parse-log")
@click.argument("log_file", default="/tmp/claude.log.jsonl", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--kind",
    type=click.Choice(sorted(DECODERS)),
    default=None,
    help="Agent kind that wrote the log. Detected from the first line when omitted.",
)
@click.pass_context
def parse_log_cmd(ctx, log_file: str, kind: str | None):
    """Render a saved JSONL agent log the way a live run shows it."""
    config = ctx.obj["config"] if ctx.obj else {}
    kind = kind or detect_kind(_first_line(log_file))

    printer = TracePrinter(console=console, limits=DisplayLimits.from_config(config.get("display")))
    parser = get_parser(kind, printer=printer, max_line_bytes=int(config.get("max_line_bytes") or MAX_LINE_BYTES))

    with open(log_file, "rb") as f:
        outcome = parser.parse(f)

    print_agent_diagnostics(outcome.result, console)
    if outcome.error is not None:
        raise click.ClickException(f"failed to read {log_file}: {outcome.error}")
