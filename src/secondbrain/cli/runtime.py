"""Wire configuration, database and services together for CLI commands."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from secondbrain.ai.backend import AIBackend, build_backend
from secondbrain.ai.embedder import EmbeddingGenerator
from secondbrain.ai.generator import InsightGenerator
from secondbrain.cli.errors import err_config, err_dimension_mismatch, err_no_db
from secondbrain.config import ConfigError, SecondBrainConfig, load_config
from secondbrain.db.connection import Database
from secondbrain.db.repository import Repository
from secondbrain.db.schema import initialize
from secondbrain.db.vectors import ensure_dimension
from secondbrain.ingest.capture import CaptureService
from secondbrain.ingest.coordinator import IngestCoordinator
from secondbrain.ingest.extractor import ContentExtractor
from secondbrain.ingest.web import WebExtractor
from secondbrain.search.retriever import RetrievalEngine
from secondbrain.storage import LocalBlobStore

DEFAULT_DB = Path(".secondbrain.db")
DEFAULT_USER = "local"

console = Console()


@dataclass
class Runtime:
    """Services bound to one open connection."""

    cfg: SecondBrainConfig
    conn: sqlite3.Connection
    repo: Repository
    backend: AIBackend
    coordinator: IngestCoordinator
    capture: CaptureService
    retrieval: RetrievalEngine


def open_db(db_path: Path) -> sqlite3.Connection:
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


@contextmanager
def open_runtime(
    db_path: Path, cfg: SecondBrainConfig, backend: AIBackend | None = None
) -> Iterator[Runtime]:
    """Open *db_path* and build every service from *cfg*.

    Captures are processed inline (no queue), matching a single-process CLI.
    """
    conn = open_db(db_path)
    try:
        backend = backend or build_backend(cfg.ai, cfg.embedding)
        repo = Repository(conn)
        blob_store = LocalBlobStore(cfg.storage.root)
        extractor = ContentExtractor(
            backend=backend,
            blob_store=blob_store,
            web=WebExtractor(
                user_agent=cfg.ingest.user_agent,
                timeout=cfg.ingest.fetch_timeout,
                max_bytes=cfg.ingest.max_fetch_bytes,
            ),
        )
        embedder = EmbeddingGenerator(backend, cfg.embedding.dimensions)
        coordinator = IngestCoordinator(
            repo,
            extractor,
            InsightGenerator(backend, cfg.ai.max_input_chars),
            embedder,
            stale_after_minutes=cfg.ingest.stale_after_minutes,
        )
        yield Runtime(
            cfg=cfg,
            conn=conn,
            repo=repo,
            backend=backend,
            coordinator=coordinator,
            capture=CaptureService(
                repo, coordinator, blob_store=blob_store, bucket=cfg.storage.bucket
            ),
            retrieval=RetrievalEngine(
                repo,
                embedder,
                search_limit=cfg.search.limit,
                related_limit=cfg.search.related_limit,
            ),
        )
    finally:
        conn.close()


def load_cli_config() -> SecondBrainConfig:
    """Load config from the current directory, exiting with a message on error."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


@contextmanager
def cli_runtime(db_path: Path) -> Iterator[Runtime]:
    """``open_runtime`` for commands: requires an existing, dimension-compatible database."""
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    cfg = load_cli_config()
    with open_runtime(db_path, cfg) as rt:
        stored = ensure_dimension(rt.conn, cfg.embedding.dimensions)
        if stored != cfg.embedding.dimensions:
            console.print(err_dimension_mismatch(stored, cfg.embedding.dimensions))
            raise typer.Exit(1)
        yield rt
