"""secondbrain process / reset — drive ingest items by hand."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from secondbrain.cli.errors import err_item_not_found, err_nothing_to_reset, err_processing_failed
from secondbrain.cli.runtime import DEFAULT_DB, DEFAULT_USER, cli_runtime
from secondbrain.ingest.capture import InlineQueue
from secondbrain.ingest.coordinator import IngestItemNotFoundError
from secondbrain.ingest.inbox import reset_stuck_items

console = Console()


def process_cmd(
    item_id: Annotated[str, typer.Argument(help="Ingest item id.")],
    db: Annotated[Path, typer.Option("--db", help="Path to the SecondBrain database.")] = DEFAULT_DB,
    user: Annotated[str, typer.Option("--user", help="Owner of the item.")] = DEFAULT_USER,
) -> None:
    """Process one ingest item (no-op if it is already done or being processed)."""
    with cli_runtime(db) as rt:
        item = rt.repo.get_ingest_item(item_id)
        if item is None or item.user_id != user:
            console.print(err_item_not_found(item_id))
            raise typer.Exit(1)
        try:
            outcome = rt.coordinator.process_by_id(item_id)
        except IngestItemNotFoundError as exc:
            console.print(err_item_not_found(item_id))
            raise typer.Exit(1) from exc
        except Exception as exc:
            console.print(err_processing_failed(item_id, str(exc)))
            raise typer.Exit(1) from exc

    if outcome.skipped:
        console.print(f"[dim]↷ Skipped — item is {outcome.status.value}[/]")
        return
    reused = " (existing insights updated)" if outcome.reused else ""
    console.print(
        f"[green]✓[/] {outcome.status.value}: {len(outcome.insight_ids)} insight(s){reused}"
    )
    for insight_id in outcome.insight_ids:
        console.print(f"  {insight_id}")


def reset_cmd(
    item_id: Annotated[
        str | None,
        typer.Option("--id", help="Reset this PROCESSING or ERROR item regardless of its age."),
    ] = None,
    db: Annotated[Path, typer.Option("--db", help="Path to the SecondBrain database.")] = DEFAULT_DB,
    user: Annotated[str, typer.Option("--user", help="Owner of the items.")] = DEFAULT_USER,
) -> None:
    """Reset stuck PROCESSING items (or one failed item with --id) and process them again."""
    with cli_runtime(db) as rt:
        try:
            reset = reset_stuck_items(
                rt.repo,
                InlineQueue(rt.coordinator),
                user,
                item_id=item_id,
                stale_after_minutes=rt.cfg.ingest.stale_after_minutes,
            )
        except IngestItemNotFoundError as exc:
            console.print(err_nothing_to_reset(item_id or ""))
            raise typer.Exit(1) from exc

        if not reset:
            console.print(
                f"[dim]No items stuck for more than {rt.cfg.ingest.stale_after_minutes} minutes.[/]"
            )
            return
        console.print(f"[green]✓[/] Reset {len(reset)} item(s)")
        for reset_id in reset:
            current = rt.repo.get_ingest_item(reset_id)
            status = current.status.value if current else "?"
            console.print(f"  {reset_id}  [dim]{status}[/]")
