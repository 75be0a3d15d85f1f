"""Agent run diagnostics block."""

from __future__ import annotations

from rich.console import Console

from poagent_core.stream.display import HEADER_RULE
from poagent_core.stream.results import RunResult, num_turns


def print_agent_diagnostics(result: RunResult | None, console: Console | None = None) -> None:
    """Print turn, token and duration figures that are present and non-zero.

    Nothing is printed when there is no result or every figure is zero.
    """
    if result is None:
        return

    rows = []
    turns = num_turns(result)
    if turns > 0:
        rows.append(f"**Num turns:** {turns}")
    if result.usage is not None:
        if result.usage.input_tokens > 0:
            rows.append(f"**Input tokens:** {result.usage.input_tokens}")
        if result.usage.output_tokens > 0:
            rows.append(f"**Output tokens:** {result.usage.output_tokens}")
    if result.duration_ms > 0:
        rows.append(f"**API duration:** {result.duration_ms / 1000:.2f} s")
    if not rows:
        return

    console = console or Console()
    for text in ["", "📊 Agent Diagnostics", HEADER_RULE, *rows, HEADER_RULE]:
        console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)
