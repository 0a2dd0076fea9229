"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from secondbrain.db.connection import Database
from secondbrain.db.repository import Repository
from secondbrain.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".secondbrain.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture(autouse=True)
def _no_api_keys(monkeypatch):
    """Tests never see real provider keys or SECONDBRAIN_* overrides."""
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "APP_ENV"):
        monkeypatch.delenv(var, raising=False)
    for var in (
        "SECONDBRAIN_SUMMARY_MODEL",
        "SECONDBRAIN_OCR_MODEL",
        "SECONDBRAIN_EMBEDDING_MODEL",
        "SECONDBRAIN_VECTOR_DIMENSION",
    ):
        monkeypatch.delenv(var, raising=False)

