"""CLI fixtures: isolated working directory, config and AI backend."""

from __future__ import annotations

import pytest
from fakes import FakeBackend, card, reply

from secondbrain.db.connection import Database
from secondbrain.db.repository import Repository
from secondbrain.db.schema import initialize
from secondbrain.db.vectors import ensure_dimension


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch, _no_api_keys):
    """Run every command in tmp_path with 3-dimensional embeddings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("secondbrain.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    monkeypatch.setattr("secondbrain.cli.main.configure_logging", lambda *a, **kw: None)
    monkeypatch.setenv("SECONDBRAIN_VECTOR_DIMENSION", "3")
    return tmp_path


@pytest.fixture(autouse=True)
def backend(monkeypatch):
    """The backend every command gets; tests adjust its replies and vectors."""
    fake = FakeBackend(
        replies=[reply(card("Sky colour", takeaway="The sky is blue.", tags=["weather"]))],
        default_vector=[0.0, 1.0, 0.0],
    )
    monkeypatch.setattr("secondbrain.cli.runtime.build_backend", lambda ai, embedding: fake)
    return fake


@pytest.fixture
def db_repo(tmp_path):
    """Repository on the default database path, as created by `secondbrain init`."""
    conn = Database(tmp_path / ".secondbrain.db").connect()
    initialize(conn)
    ensure_dimension(conn, 3)
    yield Repository(conn)
    conn.close()
