"""Tests for secondbrain process / reset."""

from __future__ import annotations

from fakes import add_item
from typer.testing import CliRunner

from secondbrain.cli.main import app
from secondbrain.db.models import IngestStatus

runner = CliRunner()


def _set_status(repo, item_id, status, age=None):
    conn = repo._conn
    conn.execute("UPDATE ingest_items SET status = ? WHERE id = ?", (status, item_id))
    if age:
        conn.execute(
            "UPDATE ingest_items SET created_at = datetime('now', ?) WHERE id = ?",
            (age, item_id),
        )
    conn.commit()


# ---------------------------------------------------------------------------
# process
# ---------------------------------------------------------------------------


def test_process_pending_item(db_repo):
    add_item(db_repo, user_id="local")
    result = runner.invoke(app, ["process", "item-1"])
    assert result.exit_code == 0, result.output
    assert "DONE: 1 insight(s)" in result.output
    assert db_repo.get_ingest_item("item-1").status == IngestStatus.DONE


def test_process_done_item_is_skipped(db_repo):
    add_item(db_repo, user_id="local")
    runner.invoke(app, ["process", "item-1"])
    result = runner.invoke(app, ["process", "item-1"])
    assert result.exit_code == 0, result.output
    assert "Skipped" in result.output
    assert "DONE" in result.output
    assert len(db_repo.list_insights_for_item("item-1")) == 1


def test_process_unknown_item_exits(db_repo):
    result = runner.invoke(app, ["process", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_process_other_users_item_exits(db_repo):
    add_item(db_repo, user_id="bob")
    result = runner.invoke(app, ["process", "item-1"])
    assert result.exit_code == 1
    assert db_repo.get_ingest_item("item-1").status == IngestStatus.PENDING


# ---------------------------------------------------------------------------
# reset
# ---------------------------------------------------------------------------


def test_reset_single_item_reprocesses_it(db_repo):
    add_item(db_repo, user_id="local")
    _set_status(db_repo, "item-1", "PROCESSING")

    result = runner.invoke(app, ["reset", "--id", "item-1"])
    assert result.exit_code == 0, result.output
    assert "Reset 1 item(s)" in result.output
    assert db_repo.get_ingest_item("item-1").status == IngestStatus.DONE


def test_reset_single_failed_item_reprocesses_it(db_repo):
    add_item(db_repo, user_id="local")
    _set_status(db_repo, "item-1", "ERROR")

    result = runner.invoke(app, ["reset", "--id", "item-1"])
    assert result.exit_code == 0, result.output
    assert "Reset 1 item(s)" in result.output
    assert db_repo.get_ingest_item("item-1").status == IngestStatus.DONE
    assert len(db_repo.list_insights_for_item("item-1")) == 1


def test_reset_bulk_leaves_failed_items(db_repo):
    add_item(db_repo, user_id="local")
    _set_status(db_repo, "item-1", "ERROR", age="-2 hours")

    result = runner.invoke(app, ["reset"])
    assert result.exit_code == 0, result.output
    assert "No items stuck" in result.output
    assert db_repo.get_ingest_item("item-1").status == IngestStatus.ERROR


def test_reset_single_pending_item_exits(db_repo):
    add_item(db_repo, user_id="local")
    result = runner.invoke(app, ["reset", "--id", "item-1"])
    assert result.exit_code == 1
    assert "nothing to reset" in result.output


def test_reset_bulk_only_stale_items(db_repo):
    add_item(db_repo, item_id="old", user_id="local")
    add_item(db_repo, item_id="fresh", user_id="local")
    _set_status(db_repo, "old", "PROCESSING", age="-2 hours")
    _set_status(db_repo, "fresh", "PROCESSING")

    result = runner.invoke(app, ["reset"])
    assert result.exit_code == 0, result.output
    assert "Reset 1 item(s)" in result.output
    assert db_repo.get_ingest_item("old").status == IngestStatus.DONE
    assert db_repo.get_ingest_item("fresh").status == IngestStatus.PROCESSING


def test_reset_nothing_stuck(db_repo):
    result = runner.invoke(app, ["reset"])
    assert result.exit_code == 0, result.output
    assert "No items stuck" in result.output
