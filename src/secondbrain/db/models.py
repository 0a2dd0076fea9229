"""Domain models for the SecondBrain database layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class IngestStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestStatus.DONE, IngestStatus.ERROR)


class SourceKind(str, Enum):
    TEXT = "TEXT"
    URL = "URL"
    PDF = "PDF"
    IMAGE = "IMAGE"
    AUDIO = "AUDIO"


@dataclass
class IngestItem:
    id: str
    user_id: str
    kind: SourceKind
    raw_text: str | None = None
    meta: str | None = None  # JSON text; see secondbrain.ingest.metadata
    status: IngestStatus = IngestStatus.PENDING
    source: str = "manual"
    created_at: str | None = None
    reclaimed_at: str | None = None
    processed_at: str | None = None


@dataclass
class Insight:
    id: str
    user_id: str
    title: str
    summary: str = ""
    takeaway: str = ""
    content: str = ""
    ingest_item_id: str | None = None
    section_index: int | None = None
    section_label: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    tags: list[str] = field(default_factory=list)
