"""Image extractor — OCR through the vision-capable AI backend."""

from __future__ import annotations

import structlog

from secondbrain.ai.backend import AIBackend
from secondbrain.ingest.base import Artifact, BaseExtractor

logger = structlog.get_logger(logger_name=__name__)


class ImageExtractor(BaseExtractor):
    """Read the visible text of an image.

    Returns '' when no AI backend is configured or the OCR call fails.
    """

    def __init__(self, backend: AIBackend) -> None:
        self._backend = backend

    def extract(self, artifact: Artifact) -> str:
        if not artifact.data or not self._backend.available:
            return ""
        try:
            return self._backend.ocr_image(artifact.data, artifact.mime).strip()
        except Exception as exc:
            logger.error("image_ocr_failed", name=artifact.name, error=str(exc))
            return ""
