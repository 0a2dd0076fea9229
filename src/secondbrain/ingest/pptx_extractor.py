"""PPTX extractor — slide text runs via zipfile + bs4.

A .pptx file is a ZIP archive; each slide lives in ``ppt/slides/slideN.xml``
and its visible text sits in DrawingML ``<a:t>`` run elements.
"""

from __future__ import annotations

import io
import warnings
import zipfile

import structlog
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from secondbrain.ingest.base import Artifact, BaseExtractor

# Slide XML goes through html.parser.
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = structlog.get_logger(logger_name=__name__)

_SLIDE_PREFIX = "ppt/slides/slide"


class PptxExtractor(BaseExtractor):
    """Collect the text runs of every slide.

    Slides are visited in lexical order of their part names. Runs within a
    slide are joined with spaces and ``<a:br>`` breaks become newlines; slides
    are separated by a blank line.
    Slides without text are skipped.
    """

    def extract(self, artifact: Artifact) -> str:
        if not artifact.data:
            return ""
        try:
            return "\n\n".join(self._extract_slides(artifact.data)).strip()
        except Exception as exc:
            logger.error("pptx_parse_failed", name=artifact.name, error=str(exc))
            return ""

    @staticmethod
    def _extract_slides(data: bytes) -> list[str]:
        """Return one text string per non-empty slide."""
        slides: list[str] = []
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = sorted(
                n for n in zf.namelist()
                if n.startswith(_SLIDE_PREFIX) and n.endswith(".xml")
            )
            for name in names:
                xml = zf.read(name).decode("utf-8", errors="replace")
                text = PptxExtractor._slide_text(xml)
                if text:
                    slides.append(text)
        return slides

    @staticmethod
    def _slide_text(xml: str) -> str:
        """Join the ``<a:t>`` runs of one slide; ``<a:br>`` starts a new line."""
        soup = BeautifulSoup(xml, "html.parser")
        lines: list[list[str]] = [[]]
        for tag in soup.find_all(["a:t", "a:br"]):
            if tag.name == "a:br":
                lines.append([])
                continue
            run = tag.get_text().strip()
            if run:
                lines[-1].append(run)
        return "\n".join(" ".join(line) for line in lines if line)
