"""Artifact model and base extractor interface for all capture formats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PDF_MIME = "application/pdf"


class ArtifactKind(str, Enum):
    TEXT = "text"
    URL = "url"
    PDF = "pdf"
    DOCX = "docx"
    PPTX = "pptx"
    IMAGE = "image"
    AUDIO = "audio"
    FILE = "file"


@dataclass
class Artifact:
    """A raw captured artifact awaiting extraction.

    Attributes:
        kind: Declared format.
        text: Inline text (TEXT) or the URL (URL).
        data: Binary payload for file formats.
        mime: Declared MIME type of *data*.
        name: Original file name, used for dispatch and placeholders.
    """

    kind: ArtifactKind
    text: str = ""
    data: bytes | None = None
    mime: str = "application/octet-stream"
    name: str | None = None

    @classmethod
    def from_text(cls, text: str) -> Artifact:
        return cls(kind=ArtifactKind.TEXT, text=text)

    @classmethod
    def from_url(cls, url: str) -> Artifact:
        return cls(kind=ArtifactKind.URL, text=url)

    @classmethod
    def from_payload(
        cls, data: bytes, mime: str | None = None, name: str | None = None
    ) -> Artifact:
        """Build a file artifact, inferring its kind from MIME type and name."""
        mime = (mime or "application/octet-stream").lower()
        return cls(kind=detect_kind(mime, name), data=data, mime=mime, name=name)


@dataclass
class ExtractionResult:
    """Plain text extracted from an artifact plus non-fatal warnings."""

    text: str
    warnings: list[str] = field(default_factory=list)


def detect_kind(mime: str, name: str | None = None) -> ArtifactKind:
    """Map a MIME type (and file name) to an artifact kind.

    Checked in order: text/*, PDF, image/*, DOCX, PPTX, audio/*; anything
    else is a generic file.
    """
    suffix = PurePosixPath(name).suffix.lower() if name else ""
    if mime.startswith("text/"):
        return ArtifactKind.TEXT
    if mime == PDF_MIME:
        return ArtifactKind.PDF
    if mime.startswith("image/"):
        return ArtifactKind.IMAGE
    if mime == DOCX_MIME or suffix == ".docx":
        return ArtifactKind.DOCX
    if mime == PPTX_MIME or suffix == ".pptx":
        return ArtifactKind.PPTX
    if mime.startswith("audio/"):
        return ArtifactKind.AUDIO
    return ArtifactKind.FILE


class BaseExtractor(ABC):
    """Abstract base for all format extractors.

    ``extract()`` returns the artifact's plain text. Implementations log and
    swallow their own parse failures and return '' instead of raising.
    """

    @abstractmethod
    def extract(self, artifact: Artifact) -> str:
        """Return the plain text of *artifact* ('' when nothing is recoverable)."""
