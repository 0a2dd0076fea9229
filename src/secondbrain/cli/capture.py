"""secondbrain capture text|url|file — create an ingest item and process it inline."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from secondbrain.cli.errors import err_file_not_found, err_processing_failed, warn_offline
from secondbrain.cli.runtime import DEFAULT_DB, DEFAULT_USER, Runtime, cli_runtime
from secondbrain.ingest.capture import CaptureResult
from secondbrain.storage import StorageError

console = Console()

capture_app = typer.Typer(help="Capture text, a URL, or a file into your SecondBrain.")

DbOption = Annotated[Path, typer.Option("--db", help="Path to the SecondBrain database.")]
UserOption = Annotated[str, typer.Option("--user", help="Owner of the captured item.")]


@capture_app.command("text")
def capture_text_cmd(
    text: Annotated[str, typer.Argument(help="Text to capture.")],
    db: DbOption = DEFAULT_DB,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Capture a free-text note."""
    if not text.strip():
        console.print("[red]Error:[/] Nothing to capture — the text is empty.")
        raise typer.Exit(1)
    with cli_runtime(db) as rt:
        _run(rt, lambda: rt.capture.capture_text(user, text))


@capture_app.command("url")
def capture_url_cmd(
    url: Annotated[str, typer.Argument(help="http(s) URL to fetch and capture.")],
    db: DbOption = DEFAULT_DB,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Capture a web page; its main article text is extracted."""
    with cli_runtime(db) as rt:
        _run(rt, lambda: rt.capture.capture_url(user, url))


@capture_app.command("file")
def capture_file_cmd(
    path: Annotated[Path, typer.Argument(help="PDF, DOCX, PPTX, image, audio or text file.")],
    mime: Annotated[
        str | None,
        typer.Option("--mime", help="Content type (guessed from the file name when omitted)."),
    ] = None,
    db: DbOption = DEFAULT_DB,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Upload a file to storage and capture it."""
    if not path.is_file():
        console.print(err_file_not_found(str(path)))
        raise typer.Exit(1)
    content_type = mime or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    data = path.read_bytes()
    with cli_runtime(db) as rt:
        _run(rt, lambda: rt.capture.capture_file(user, data, content_type, name=path.name))


def _run(rt: Runtime, capture) -> None:
    if not rt.backend.available:
        console.print(warn_offline(rt.cfg.ai.summary_model))

    try:
        result: CaptureResult = capture()
    except (ValueError, StorageError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1) from exc
    except Exception as exc:
        console.print(err_processing_failed("capture", str(exc)))
        raise typer.Exit(1) from exc

    _show_result(rt, result)


def _show_result(rt: Runtime, result: CaptureResult) -> None:
    console.print(f"[green]✓[/] Captured [bold]{result.ingest_item_id}[/] ({result.status.value})")
    if result.outcome is None or result.outcome.skipped:
        return
    for insight in rt.repo.get_insights_by_ids(result.outcome.insight_ids):
        tags = ", ".join(insight.tags)
        console.print(f"  • [bold]{insight.title}[/] [dim]{insight.id}[/]")
        console.print(f"    {insight.takeaway}")
        if tags:
            console.print(f"    [dim]tags: {tags}[/]")
