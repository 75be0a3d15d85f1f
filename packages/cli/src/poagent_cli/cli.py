"""CLI entry point for poagent.

Commands:
  review     run an agent review of a PO file and score it
  report     score a saved review (re-merging newer run files)
  parse-log  replay a saved agent JSONL log through the stream parser
  history    display past review records from the configured store
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from poagent_cli.commands.history import history_cmd
from poagent_cli.commands.parse_log import parse_log_cmd
from poagent_cli.commands.report import report_cmd
from poagent_cli.commands.review import review_cmd

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich on stderr; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_store(config: dict):
    """Instantiate the configured store from .poagent.yml settings.

    Store selection hierarchy:
      store: sqlite → SQLiteStore (uses store_path, default .poagent.db)
      (default)     → NoOpStore  (no persistence)

    This factory lives in cli.py so neither poagent_core nor poagent_store
    know about the CLI config format.
    """
    from poagent_store.noop import NoOpStore

    store_type = config.get("store") or "noop"

    if store_type == "sqlite":
        from poagent_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path") or ".poagent.db")

    if store_type != "noop":
        console.print(f"[yellow]Unknown store '{store_type}'. Falling back to no store.[/yellow]")
    return NoOpStore()


@click.group()
@click.version_option(
    version=importlib.metadata.version("poagent"),
    prog_name="poagent",
)
@click.option(
    "--config",
    "config_path",
    default=".poagent.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="POAGENT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Drive coding agents to review gettext PO translations."""
    from poagent_core.config import load_config

    setup_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, OSError) as exc:
        raise click.UsageError(str(exc)) from exc

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(review_cmd)
main.add_command(report_cmd)
main.add_command(parse_log_cmd)
main.add_command(history_cmd)
