"""Plain-text extractor — inline text and text/* payloads."""

from __future__ import annotations

from secondbrain.ingest.base import Artifact, BaseExtractor


class PlainTextExtractor(BaseExtractor):
    """Return inline text verbatim, or decode a text/* payload as UTF-8."""

    def extract(self, artifact: Artifact) -> str:
        if artifact.data is None:
            return artifact.text
        return artifact.data.decode("utf-8", errors="replace")
