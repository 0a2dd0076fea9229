"""secondbrain init — create the database and a starter project config.

Creates:
  .secondbrain.db     — empty database with schema and the embedding dimension
  secondbrain.yaml    — project config (models, limits, storage root)
  <storage.root>/     — directory for uploaded payloads
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from secondbrain.cli.runtime import DEFAULT_DB, load_cli_config, open_db
from secondbrain.config import write_project_config
from secondbrain.db.vectors import ensure_dimension

console = Console()


def init_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the SecondBrain database."),
    ] = DEFAULT_DB,
) -> None:
    """Initialize a SecondBrain project in the current directory."""
    cfg = load_cli_config()
    existed = db.exists()

    db.parent.mkdir(parents=True, exist_ok=True)
    conn = open_db(db)
    try:
        stored = ensure_dimension(conn, cfg.embedding.dimensions)
    finally:
        conn.close()

    config_path = write_project_config(Path.cwd(), cfg)
    Path(cfg.storage.root).mkdir(parents=True, exist_ok=True)

    if existed:
        console.print(f"[yellow]⚠[/]  {db} already exists — schema checked, data preserved.")
    else:
        console.print(f"[green]✓[/] Created {db}")
    console.print(f"[green]✓[/] Config: {config_path}")
    console.print(f"[green]✓[/] Storage: {cfg.storage.root}")
    if stored != cfg.embedding.dimensions:
        console.print(
            f"[yellow]⚠[/]  Database embeds with {stored} dimensions; "
            f"config asks for {cfg.embedding.dimensions}."
        )
    else:
        console.print(f"  Embedding dimension: [bold]{stored}[/]")
