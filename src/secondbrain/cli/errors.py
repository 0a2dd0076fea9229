"""SecondBrain rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from secondbrain.cli.errors import err_no_db
    console.print(err_no_db(str(db)))
    raise typer.Exit(1)
"""

from __future__ import annotations

from secondbrain.ai.backend import provider_of


def warn_offline(model: str) -> str:
    """No API key for the summary model's provider: insights use the local fallback."""
    provider = provider_of(model)
    env_var = f"{provider.upper()}_API_KEY"
    return (
        f"[yellow]Offline mode:[/] no API key for '{provider}'. "
        "Insights use a local fallback and no embeddings are stored.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".secondbrain.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  secondbrain init"
    )


def err_item_not_found(item_id: str) -> str:
    """Ingest item missing, not owned, or not in the expected state."""
    return (
        f"[red]Error:[/] Ingest item '{item_id}' not found.\n"
        "  Run:  secondbrain status --items  to list your ingest items."
    )


def err_nothing_to_reset(item_id: str) -> str:
    """Single-item reset requested for an item that is neither PROCESSING nor ERROR."""
    return (
        f"[red]Error:[/] Ingest item '{item_id}' is not processing or failed; nothing to reset.\n"
        "  Only PROCESSING and ERROR items can be reset. Use  secondbrain process <id>  for PENDING items."
    )


def err_insight_not_found(insight_id: str) -> str:
    """Insight missing or owned by another user."""
    return (
        f"[red]Error:[/] Insight '{insight_id}' not found.\n"
        "  Run:  secondbrain search <query>  to find insight ids."
    )


def err_file_not_found(path: str) -> str:
    """Capture file does not exist."""
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Check the path and try again."
    )


def err_dimension_mismatch(stored: int, configured: int) -> str:
    """Embedding dimension in the database differs from the configuration."""
    return (
        "[red]Error:[/] Embedding dimension mismatch.\n"
        f"  Database uses:  {stored}\n"
        f"  Config has:     {configured}\n"
        "  Set embedding.dimensions back to the database value, or start a new database."
    )


def err_config(message: str) -> str:
    """Configuration could not be loaded."""
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Fix secondbrain.yaml or ~/.secondbrain/config.yaml and retry."
    )


def err_processing_failed(item_id: str, error: str) -> str:
    """process_by_id raised; the item is now ERROR."""
    return (
        f"[red]Error:[/] Processing failed for '{item_id}': {error}\n"
        "  The item is marked ERROR. Fix the cause, then capture it again."
    )
