"""Capture entry points — create PENDING ingest items and hand them to a queue.

Every capture creates exactly one PENDING item. The item id is then offered
to a ``JobQueue``; when the queue refuses it (returns False or raises), the
item is processed synchronously so that no capture is left waiting for a
worker that will never come.
"""

from __future__ import annotations

import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog

from secondbrain.db.models import IngestItem, IngestStatus, SourceKind
from secondbrain.db.repository import Repository
from secondbrain.ingest.coordinator import IngestCoordinator, ProcessOutcome
from secondbrain.ingest.metadata import StorageMeta, UrlMeta, dump_meta
from secondbrain.storage import BlobStore

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_BUCKET = "uploads"

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class JobQueue(ABC):
    """Hands ingest item ids to whatever runs ``process_by_id``."""

    @abstractmethod
    def enqueue(self, item_id: str) -> bool:
        """Offer *item_id* for processing. Returns False when not accepted."""


class NullQueue(JobQueue):
    """A queue that never accepts work (forces synchronous processing)."""

    def enqueue(self, item_id: str) -> bool:
        return False


class InlineQueue(JobQueue):
    """Runs the coordinator immediately in the calling thread."""

    def __init__(self, coordinator: IngestCoordinator) -> None:
        self._coordinator = coordinator

    def enqueue(self, item_id: str) -> bool:
        self._coordinator.process_by_id(item_id)
        return True


@dataclass
class CaptureResult:
    """Outcome of a capture call.

    ``outcome`` is set only when the item was processed synchronously here.
    """

    ingest_item_id: str
    status: IngestStatus
    queued: bool
    outcome: ProcessOutcome | None = None


def upload_kind(content_type: str | None) -> SourceKind:
    """Map an upload's MIME type to the kind recorded on the ingest item."""
    mime = (content_type or "").lower()
    if mime.startswith("image/"):
        return SourceKind.IMAGE
    if mime.startswith("audio/"):
        return SourceKind.AUDIO
    if mime.startswith("text/"):
        return SourceKind.TEXT
    return SourceKind.PDF


def _safe_name(name: str | None) -> str:
    cleaned = _UNSAFE_NAME.sub("_", (name or "").strip()).strip("._")
    return cleaned or "upload"


class CaptureService:
    """Create ingest items for text, URL and file captures.

    Args:
        repo: Repository used to insert the PENDING items.
        coordinator: Used for synchronous processing when the queue refuses.
        queue: Job queue; defaults to ``NullQueue`` (always synchronous).
        blob_store: Storage for uploaded payloads (required by capture_file).
        bucket: Bucket holding uploads.
    """

    def __init__(
        self,
        repo: Repository,
        coordinator: IngestCoordinator,
        queue: JobQueue | None = None,
        blob_store: BlobStore | None = None,
        bucket: str = DEFAULT_BUCKET,
    ) -> None:
        self._repo = repo
        self._coordinator = coordinator
        self._queue = queue or NullQueue()
        self._blob_store = blob_store
        self._bucket = bucket

    def capture_text(self, user_id: str, text: str, source: str = "manual") -> CaptureResult:
        """Capture a free-text note."""
        if not text.strip():
            raise ValueError("Nothing to capture: text is empty")
        return self._create(user_id, SourceKind.TEXT, raw_text=text, meta=None, source=source)

    def capture_url(self, user_id: str, url: str, source: str = "manual") -> CaptureResult:
        """Capture a URL; the page is fetched when the item is processed."""
        url = url.strip()
        if not url:
            raise ValueError("Nothing to capture: URL is empty")
        return self._create(
            user_id,
            SourceKind.URL,
            raw_text=url,
            meta=dump_meta(UrlMeta(url=url)),
            source=source,
        )

    def capture_file(
        self,
        user_id: str,
        data: bytes,
        content_type: str | None,
        name: str | None = None,
        source: str = "upload",
    ) -> CaptureResult:
        """Upload *data* to the blob store and capture it.

        The payload is extracted when the item is processed.

        Raises:
            ValueError: If no blob store is configured or *data* is empty.
            StorageError: If the upload fails.
        """
        if self._blob_store is None:
            raise ValueError("File capture requires a blob store")
        if not data:
            raise ValueError("Nothing to capture: file is empty")

        item_id = str(uuid.uuid4())
        path = f"{user_id}/{item_id}/{_safe_name(name)}"
        self._blob_store.upload(self._bucket, path, data)
        meta = StorageMeta(
            bucket=self._bucket,
            path=path,
            content_type=content_type,
            name=name,
            size=len(data),
        )
        return self._create(
            user_id,
            upload_kind(content_type),
            raw_text=None,
            meta=dump_meta(meta),
            source=source,
            item_id=item_id,
        )

    def _create(
        self,
        user_id: str,
        kind: SourceKind,
        raw_text: str | None,
        meta: str | None,
        source: str,
        item_id: str | None = None,
    ) -> CaptureResult:
        item = IngestItem(
            id=item_id or str(uuid.uuid4()),
            user_id=user_id,
            kind=kind,
            raw_text=raw_text,
            meta=meta,
            source=source,
        )
        self._repo.add_ingest_item(item)
        logger.info("ingest_item_created", ingest_item_id=item.id, kind=kind.value, user_id=user_id)
        return self._dispatch(item.id)

    def _dispatch(self, item_id: str) -> CaptureResult:
        try:
            queued = self._queue.enqueue(item_id)
        except Exception as exc:
            logger.warning("enqueue_failed", ingest_item_id=item_id, error=str(exc))
            queued = False

        if queued:
            current = self._repo.get_ingest_item(item_id)
            status = current.status if current else IngestStatus.PENDING
            return CaptureResult(ingest_item_id=item_id, status=status, queued=True)

        outcome = self._coordinator.process_by_id(item_id)
        return CaptureResult(
            ingest_item_id=item_id, status=outcome.status, queued=False, outcome=outcome
        )
