"""secondbrain status command.

Shows a database overview (ingest items per status, insights, embeddings,
embedding dimension) and, with --items, the inbox of recent ingest items.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from secondbrain.cli.errors import err_no_db
from secondbrain.cli.runtime import DEFAULT_DB, DEFAULT_USER, load_cli_config, open_db
from secondbrain.db.models import IngestStatus
from secondbrain.db.repository import Repository
from secondbrain.db.vectors import stored_dimension
from secondbrain.ingest.inbox import ItemStatus, ingest_status

console = Console()

_STATUS_STYLE = {
    IngestStatus.PENDING: "yellow",
    IngestStatus.PROCESSING: "cyan",
    IngestStatus.DONE: "green",
    IngestStatus.ERROR: "red",
}


def status_cmd(
    items: Annotated[
        bool, typer.Option("--items", help="List the user's ingest items.")
    ] = False,
    db: Annotated[Path, typer.Option("--db", help="Path to the SecondBrain database.")] = DEFAULT_DB,
    user: Annotated[str, typer.Option("--user", help="Whose items to count.")] = DEFAULT_USER,
) -> None:
    """Show ingest and index status for a user."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)
    cfg = load_cli_config()

    conn = open_db(db)
    try:
        repo = Repository(conn)
        counts = repo.count_ingest_items_by_status(user)
        total, embedded = repo.count_insights(user)
        dimension = stored_dimension(conn)
        rows = ingest_status(repo, user) if items else []
    finally:
        conn.close()

    lines = [f"Database:  {db}", f"User:      [bold]{user}[/]"]
    lines.append(
        "Items:     "
        + "  |  ".join(
            f"[{_STATUS_STYLE[s]}]{s.value}[/] {counts[s]}" for s in IngestStatus
        )
    )
    lines.append(f"Insights:  [bold]{total}[/]  |  with embedding: [bold]{embedded}[/]")
    if dimension is None:
        lines.append("Dimension: [dim](not recorded)[/]")
    elif dimension != cfg.embedding.dimensions:
        lines.append(
            f"Dimension: [red]{dimension}[/] (config: {cfg.embedding.dimensions} — mismatch)"
        )
    else:
        lines.append(f"Dimension: {dimension}")
    console.print(Panel("\n".join(lines), title="[bold]SecondBrain[/]", expand=False))

    if items:
        _show_items(rows)


def _show_items(rows: list[ItemStatus]) -> None:
    if not rows:
        console.print("[dim]No ingest items yet.[/]")
        return
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Status")
    table.add_column("Kind", style="dim")
    table.add_column("Item")
    table.add_column("Insights", justify="right")
    table.add_column("Created", style="dim")
    table.add_column("ID", style="dim", no_wrap=True)
    for row in rows:
        style = _STATUS_STYLE[row.status]
        table.add_row(
            f"[{style}]{row.status.value}[/]",
            row.kind,
            row.label,
            str(row.insight_count),
            (row.created_at or "")[:16],
            row.id,
        )
    console.print(Panel(table, title="[bold]Inbox[/]", expand=False))
