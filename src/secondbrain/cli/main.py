"""SecondBrain CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from secondbrain.cli.capture import capture_app
from secondbrain.cli.inbox import process_cmd, reset_cmd
from secondbrain.cli.init import init_cmd
from secondbrain.cli.search import related_cmd, search_cmd
from secondbrain.cli.status import status_cmd
from secondbrain.config import ConfigError, LoggingCfg, load_config
from secondbrain.logging_setup import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("secondbrain")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"secondbrain {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="secondbrain",
    help=(
        "SecondBrain — capture anything, get structured insights back.\n\n"
        "  secondbrain capture  Turn text, URLs and files into insight cards.\n"
        "  secondbrain search   Find insights by meaning and by keyword."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log at DEBUG level.")
    ] = False,
) -> None:
    """SecondBrain — capture anything, get structured insights back."""
    try:
        log_cfg = load_config().logging
    except ConfigError:
        # Reported by the command itself.
        log_cfg = LoggingCfg()
    configure_logging("DEBUG" if verbose else log_cfg.level, json_output=log_cfg.json)


app.command("init")(init_cmd)
app.add_typer(capture_app, name="capture")
app.command("process")(process_cmd)
app.command("reset")(reset_cmd)
app.command("search")(search_cmd)
app.command("related")(related_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed SecondBrain version."""
    typer.echo(f"secondbrain {_installed_version()}")


if __name__ == "__main__":
    app()
