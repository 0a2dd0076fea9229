"""secondbrain search / related — query insights and show rich tables."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from secondbrain.cli.errors import err_insight_not_found
from secondbrain.cli.runtime import DEFAULT_DB, DEFAULT_USER, cli_runtime
from secondbrain.search.retriever import SearchResult

console = Console()


def search_cmd(
    query: Annotated[str, typer.Argument(help="Words to search for.")],
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", min=1, help="Maximum number of results.")
    ] = None,
    db: Annotated[Path, typer.Option("--db", help="Path to the SecondBrain database.")] = DEFAULT_DB,
    user: Annotated[str, typer.Option("--user", help="Whose insights to search.")] = DEFAULT_USER,
) -> None:
    """Hybrid search: semantic matches first, then literal keyword matches."""
    with cli_runtime(db) as rt:
        results = rt.retrieval.search(user, query, limit=limit)

    if not results:
        console.print(f"[dim]No insights match '{query}'.[/]")
        return
    console.print(_results_table(results, title=f"Search: {query}"))


def related_cmd(
    insight_id: Annotated[str, typer.Argument(help="Insight id.")],
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", min=1, help="Maximum number of results.")
    ] = None,
    db: Annotated[Path, typer.Option("--db", help="Path to the SecondBrain database.")] = DEFAULT_DB,
    user: Annotated[str, typer.Option("--user", help="Owner of the insight.")] = DEFAULT_USER,
) -> None:
    """Show the insights closest to INSIGHT_ID."""
    with cli_runtime(db) as rt:
        source = rt.repo.get_insight(insight_id)
        if source is None or source.user_id != user:
            console.print(err_insight_not_found(insight_id))
            raise typer.Exit(1)
        results = rt.retrieval.find_related(insight_id, user, limit=limit)

    if not results:
        console.print(f"[dim]No related insights for '{source.title}' (no embedding yet?).[/]")
        return
    console.print(_results_table(results, title=f"Related to: {source.title}"))


def _results_table(results: list[SearchResult], title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Score", justify="right", style="cyan", width=6)
    table.add_column("Title", style="bold")
    table.add_column("Takeaway")
    table.add_column("Tags", style="dim")
    table.add_column("ID", style="dim", no_wrap=True)
    for result in results:
        score = f"{result.similarity:.2f}" if result.similarity is not None else "—"
        insight = result.insight
        table.add_row(score, insight.title, insight.takeaway, ", ".join(insight.tags), insight.id)
    return table
