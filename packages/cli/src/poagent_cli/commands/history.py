"""history command: display past review records from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("history")
@click.argument("po_file", required=False)
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, po_file: str | None, limit: int):
    """Show past review records, optionally for a single PO_FILE.

    Reads from the configured store. Add 'store: sqlite' to .poagent.yml to
    keep history.
    """
    from poagent_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError("No store configured. Add 'store: sqlite' to .poagent.yml.")

    records = store.list_reviews(po_file)
    if not records:
        console.print("[yellow]No review records found.[/yellow]")
        return

    # Show most recent first, capped at --limit.
    records = list(reversed(records))[:limit]

    title = f"Review History: {po_file}" if po_file else "Review History"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("PO File", style="bold", max_width=40)
    table.add_column("Agent", width=10)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Crit/Maj/Min", justify="right", width=12)
    table.add_column("Entries", justify="right", width=8)
    table.add_column("Runs", justify="right", width=5)
    table.add_column("Reviewed At", width=20)

    for r in records:
        style = "green" if r.score >= 90 else "yellow" if r.score >= 70 else "red"
        table.add_row(
            r.po_file,
            r.agent,
            f"[{style}]{r.score}[/{style}]",
            f"{r.critical}/{r.major}/{r.minor}",
            str(r.total_entries),
            str(r.runs),
            r.reviewed_at[:19].replace("T", " "),
        )

    console.print(table)
