"""Inbox operations — operator resets and per-item status."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from secondbrain.db.models import IngestStatus
from secondbrain.db.repository import Repository
from secondbrain.ingest.capture import JobQueue
from secondbrain.ingest.coordinator import DEFAULT_STALE_AFTER_MINUTES, IngestItemNotFoundError
from secondbrain.ingest.metadata import SectionsMeta, StorageMeta, UrlMeta, load_meta

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class ItemStatus:
    """One row of the inbox view."""

    id: str
    kind: str
    status: IngestStatus
    created_at: str | None
    processed_at: str | None
    label: str
    insight_count: int


def reset_stuck_items(
    repo: Repository,
    queue: JobQueue,
    user_id: str,
    item_id: str | None = None,
    stale_after_minutes: int = DEFAULT_STALE_AFTER_MINUTES,
) -> list[str]:
    """Reset stuck PROCESSING items to PENDING and re-enqueue them.

    With *item_id*, that single item is reset regardless of its age; it must
    belong to *user_id* and be PROCESSING or ERROR, so a failed job can be
    retried. Without it, every PROCESSING item older than the staleness
    window is reset; ERROR items are left alone.

    Returns:
        The ids that were reset.

    Raises:
        IngestItemNotFoundError: If *item_id* is given and no owned
            PROCESSING or ERROR item has that id.
    """
    if item_id is not None:
        if not repo.reset_item(item_id, user_id):
            raise IngestItemNotFoundError(f"No processing or failed ingest item {item_id} to reset")
        reset = [item_id]
    else:
        reset = repo.reset_stuck_items(user_id, stale_after_minutes)

    for reset_id in reset:
        logger.info("ingest_item_reset", ingest_item_id=reset_id, user_id=user_id)
        try:
            queue.enqueue(reset_id)
        except Exception as exc:
            # The item stays PENDING; the next delivery or reset picks it up.
            logger.warning("enqueue_failed", ingest_item_id=reset_id, error=str(exc))
    return reset


def _label(kind: str, raw_text: str | None, meta: str | None) -> str:
    parsed = load_meta(meta)
    source = parsed.source if isinstance(parsed, SectionsMeta) else parsed
    if isinstance(parsed, SectionsMeta) and parsed.sections:
        return parsed.sections[0].title
    if isinstance(source, UrlMeta):
        return source.url
    if isinstance(source, StorageMeta):
        return source.name or source.path.rsplit("/", 1)[-1]
    text = (raw_text or "").strip().split("\n", 1)[0]
    return text[:60] or kind


def ingest_status(
    repo: Repository, user_id: str, ids: list[str] | None = None
) -> list[ItemStatus]:
    """Return inbox rows for *user_id*'s items, newest first.

    Items owned by other users are never returned, even when their ids are
    passed explicitly.
    """
    rows: list[ItemStatus] = []
    for item in repo.list_ingest_items(user_id, ids):
        rows.append(
            ItemStatus(
                id=item.id,
                kind=item.kind.value,
                status=item.status,
                created_at=item.created_at,
                processed_at=item.processed_at,
                label=_label(item.kind.value, item.raw_text, item.meta),
                insight_count=len(repo.list_insights_for_item(item.id)),
            )
        )
    return rows
