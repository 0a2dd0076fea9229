"""DOCX extractor — raw paragraph text via python-docx."""

from __future__ import annotations

import io

import docx
import structlog

from secondbrain.ingest.base import Artifact, BaseExtractor

logger = structlog.get_logger(logger_name=__name__)


class DocxExtractor(BaseExtractor):
    """Return the paragraph text of a Word document, one paragraph per line."""

    def extract(self, artifact: Artifact) -> str:
        if not artifact.data:
            return ""
        try:
            document = docx.Document(io.BytesIO(artifact.data))
        except Exception as exc:
            logger.error("docx_parse_failed", name=artifact.name, error=str(exc))
            return ""
        return "\n".join(p.text for p in document.paragraphs).strip()
