"""Typed ingest item metadata.

``ingest_items.meta`` holds one of three variants, discriminated by ``kind``:

- ``url``: the original URL of a URL capture.
- ``storage``: where an uploaded binary payload lives.
- ``sections``: written when processing finishes; summarises the generated
  sections and keeps the metadata the capture started with.

Metadata is validated when written (``dump_meta``). Rows that no longer
validate read back as None (``load_meta``).
"""

from __future__ import annotations

import json
from typing import Annotated, Literal, Union

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = structlog.get_logger(logger_name=__name__)


class MetadataError(ValueError):
    """Raised when ingest metadata fails validation at write time."""


class UrlMeta(BaseModel):
    kind: Literal["url"] = "url"
    url: Annotated[str, Field(min_length=1)]


class StorageMeta(BaseModel):
    kind: Literal["storage"] = "storage"
    bucket: Annotated[str, Field(min_length=1)]
    path: Annotated[str, Field(min_length=1)]
    content_type: str | None = None
    name: str | None = None
    size: int | None = None


class SectionRef(BaseModel):
    index: int
    title: str
    insight_id: str


class SectionsMeta(BaseModel):
    kind: Literal["sections"] = "sections"
    summary: str | None = None
    fallback: bool = False
    sections: list[SectionRef] = Field(default_factory=list)
    source: UrlMeta | StorageMeta | None = None


IngestMeta = Annotated[Union[UrlMeta, StorageMeta, SectionsMeta], Field(discriminator="kind")]

_adapter: TypeAdapter[IngestMeta] = TypeAdapter(IngestMeta)


def dump_meta(meta: UrlMeta | StorageMeta | SectionsMeta | dict | None) -> str | None:
    """Validate *meta* and return its JSON text (None stays None).

    Raises:
        MetadataError: If *meta* is not a valid variant.
    """
    if meta is None:
        return None
    try:
        validated = _adapter.validate_python(meta)
    except ValidationError as exc:
        raise MetadataError(f"Invalid ingest metadata: {exc}") from exc
    return validated.model_dump_json(exclude_none=True)


def load_meta(raw: str | None) -> UrlMeta | StorageMeta | SectionsMeta | None:
    """Parse stored metadata; missing or invalid metadata yields None."""
    if not raw:
        return None
    try:
        return _adapter.validate_python(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        logger.warning("ingest_meta_invalid", error=str(exc)[:200])
        return None


def source_meta(
    meta: UrlMeta | StorageMeta | SectionsMeta | None,
) -> UrlMeta | StorageMeta | None:
    """Return the capture-time metadata, unwrapping a ``sections`` record."""
    if isinstance(meta, SectionsMeta):
        return meta.source
    return meta
