"""Content extractor — dispatch a captured artifact to its format extractor.

Dispatch by artifact kind:
  TEXT   → PlainTextExtractor (verbatim / UTF-8 decode)
  URL    → WebExtractor
  PDF    → PdfExtractor
  DOCX   → DocxExtractor
  PPTX   → PptxExtractor
  IMAGE  → ImageExtractor (OCR via the AI backend)
  AUDIO  → AudioExtractor (not supported, always '')
  FILE   → placeholder "Captured file <name>"

Extraction never raises: failures are logged by the format extractor and
surface as empty text, which the insight generator handles with its
fallback.
"""

from __future__ import annotations

import structlog

from secondbrain.ai.backend import AIBackend, NullBackend
from secondbrain.ingest.audio import AUDIO_UNSUPPORTED, AudioExtractor
from secondbrain.ingest.base import Artifact, ArtifactKind, BaseExtractor, ExtractionResult
from secondbrain.ingest.docx_extractor import DocxExtractor
from secondbrain.ingest.image import ImageExtractor
from secondbrain.ingest.metadata import StorageMeta
from secondbrain.ingest.pdf import PdfExtractor
from secondbrain.ingest.plaintext import PlainTextExtractor
from secondbrain.ingest.pptx_extractor import PptxExtractor
from secondbrain.ingest.web import WebExtractor
from secondbrain.storage import BlobStore

logger = structlog.get_logger(logger_name=__name__)


class ContentExtractor:
    """Convert any captured artifact into plain text.

    Args:
        backend: AI capability used for image OCR.
        blob_store: Storage collaborator for uploaded payloads.
        web: URL extractor (override for custom fetch settings).
    """

    def __init__(
        self,
        backend: AIBackend | None = None,
        blob_store: BlobStore | None = None,
        web: WebExtractor | None = None,
    ) -> None:
        self._blob_store = blob_store
        self._extractors: dict[ArtifactKind, BaseExtractor] = {
            ArtifactKind.TEXT: PlainTextExtractor(),
            ArtifactKind.URL: web or WebExtractor(),
            ArtifactKind.PDF: PdfExtractor(),
            ArtifactKind.DOCX: DocxExtractor(),
            ArtifactKind.PPTX: PptxExtractor(),
            ArtifactKind.IMAGE: ImageExtractor(backend or NullBackend()),
            ArtifactKind.AUDIO: AudioExtractor(),
        }

    def extract(self, artifact: Artifact) -> ExtractionResult:
        """Return the plain text of *artifact* and any warnings."""
        if artifact.kind == ArtifactKind.FILE:
            label = artifact.name or "upload"
            logger.warning("unsupported_file_type", mime=artifact.mime, name=artifact.name)
            return ExtractionResult(
                text=f"Captured file {label}",
                warnings=[f"unsupported file type {artifact.mime}; stored a placeholder"],
            )

        text = self._extractors[artifact.kind].extract(artifact)
        warnings: list[str] = []
        if artifact.kind == ArtifactKind.AUDIO:
            warnings.append(AUDIO_UNSUPPORTED)
        elif not text.strip() and artifact.kind != ArtifactKind.TEXT:
            warnings.append(f"no text extracted from {artifact.kind.value} artifact")
        return ExtractionResult(text=text, warnings=warnings)

    def extract_from_storage(self, meta: StorageMeta) -> ExtractionResult:
        """Download an uploaded payload and extract it.

        Download failures (or a missing blob store) yield empty text.
        """
        if self._blob_store is None:
            logger.warning("blob_store_missing", bucket=meta.bucket, path=meta.path)
            return ExtractionResult(text="", warnings=["no blob store configured"])
        try:
            data = self._blob_store.download(meta.bucket, meta.path)
        except Exception as exc:
            logger.error("storage_download_failed", bucket=meta.bucket, path=meta.path, error=str(exc))
            return ExtractionResult(text="", warnings=[f"download failed: {exc}"])

        name = meta.name or meta.path.rsplit("/", 1)[-1]
        return self.extract(Artifact.from_payload(data, meta.content_type, name))
