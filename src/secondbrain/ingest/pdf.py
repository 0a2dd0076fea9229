"""PDF extractor — page-based text extraction via pypdf."""

from __future__ import annotations

import io

import pypdf
import structlog

from secondbrain.ingest.base import Artifact, BaseExtractor

logger = structlog.get_logger(logger_name=__name__)


class PdfExtractor(BaseExtractor):
    """Extract the text of a PDF payload.

    Strategy:
    - Read the payload with ``pypdf.PdfReader``.
    - Extract text page-by-page; pages without text (scanned images, etc.)
      are skipped.
    - Join pages with newlines.

    A parse error yields '' rather than a failure.
    """

    def extract(self, artifact: Artifact) -> str:
        if not artifact.data:
            return ""
        try:
            return self._extract_text(artifact.data)
        except Exception as exc:
            logger.error("pdf_parse_failed", name=artifact.name, error=str(exc))
            return ""

    @staticmethod
    def _extract_text(data: bytes) -> str:
        """Extract all page text from the PDF bytes in *data*."""
        reader = pypdf.PdfReader(io.BytesIO(data))
        parts: list[str] = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            stripped = page_text.strip()
            if stripped:
                parts.append(stripped)
        return "\n".join(parts)
