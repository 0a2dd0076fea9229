"""Audio extractor.

Transcription is not implemented: every audio artifact yields ''. The
pipeline then stores the generic fallback insight for the capture.
"""

from __future__ import annotations

import structlog

from secondbrain.ingest.base import Artifact, BaseExtractor

logger = structlog.get_logger(logger_name=__name__)

AUDIO_UNSUPPORTED = "audio transcription is not supported; no text extracted"


class AudioExtractor(BaseExtractor):
    """Always returns ''."""

    def extract(self, artifact: Artifact) -> str:
        logger.warning("audio_transcription_unsupported", name=artifact.name, mime=artifact.mime)
        return ""
