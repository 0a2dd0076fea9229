"""Tests for the per-format extractors and kind detection."""

from __future__ import annotations

import io
import zipfile
from unittest.mock import MagicMock, patch

import docx
import pytest
from fakes import FakeBackend

from secondbrain.ai.backend import NullBackend
from secondbrain.ingest.audio import AudioExtractor
from secondbrain.ingest.base import DOCX_MIME, PDF_MIME, PPTX_MIME, Artifact, ArtifactKind, detect_kind
from secondbrain.ingest.docx_extractor import DocxExtractor
from secondbrain.ingest.image import ImageExtractor
from secondbrain.ingest.pdf import PdfExtractor
from secondbrain.ingest.plaintext import PlainTextExtractor
from secondbrain.ingest.pptx_extractor import PptxExtractor


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _mock_reader(page_texts: list[str | None]):
    """Return a mock PdfReader with pages that yield the given texts."""
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)
    reader = MagicMock()
    reader.pages = pages
    return reader


_SLIDE_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<p:sld xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
    "<p:cSld><p:spTree>{runs}</p:spTree></p:cSld></p:sld>"
)


def _pptx(slides: dict[str, list[str]]) -> bytes:
    """Build a minimal .pptx archive: {part name: [text runs]}."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("[Content_Types].xml", "<Types/>")
        for name, runs in slides.items():
            body = "".join(f"<p:sp><p:txBody><a:p><a:r><a:t>{r}</a:t></a:r></a:p></p:txBody></p:sp>" for r in runs)
            zf.writestr(name, _SLIDE_XML.format(runs=body))
        zf.writestr("ppt/slideLayouts/slideLayout1.xml", _SLIDE_XML.format(runs="<a:t>Layout</a:t>"))
    return buffer.getvalue()


def _docx(paragraphs: list[str]) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# ------------------------------------------------------------------
# detect_kind
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    ("mime", "name", "expected"),
    [
        ("text/plain", "notes.txt", ArtifactKind.TEXT),
        ("text/markdown", None, ArtifactKind.TEXT),
        (PDF_MIME, "paper.pdf", ArtifactKind.PDF),
        ("image/png", "board.png", ArtifactKind.IMAGE),
        (DOCX_MIME, None, ArtifactKind.DOCX),
        ("application/octet-stream", "report.DOCX", ArtifactKind.DOCX),
        (PPTX_MIME, None, ArtifactKind.PPTX),
        ("application/octet-stream", "deck.pptx", ArtifactKind.PPTX),
        ("audio/mpeg", "memo.mp3", ArtifactKind.AUDIO),
        ("application/zip", "archive.zip", ArtifactKind.FILE),
    ],
)
def test_detect_kind(mime, name, expected):
    assert detect_kind(mime, name) == expected


def test_from_payload_normalises_mime():
    artifact = Artifact.from_payload(b"x", "Image/PNG", "a.png")
    assert artifact.kind == ArtifactKind.IMAGE
    assert artifact.mime == "image/png"


# ------------------------------------------------------------------
# Plain text
# ------------------------------------------------------------------


def test_plaintext_inline_verbatim():
    assert PlainTextExtractor().extract(Artifact.from_text("  keep me  ")) == "  keep me  "


def test_plaintext_payload_decoded():
    artifact = Artifact.from_payload("naïve café".encode(), "text/plain")
    assert PlainTextExtractor().extract(artifact) == "naïve café"


def test_plaintext_invalid_utf8_replaced():
    artifact = Artifact.from_payload(b"ok \xff", "text/plain")
    assert PlainTextExtractor().extract(artifact).startswith("ok ")


# ------------------------------------------------------------------
# PDF
# ------------------------------------------------------------------


def test_pdf_pages_joined_and_blank_pages_skipped():
    artifact = Artifact.from_payload(b"%PDF", PDF_MIME)
    with patch("secondbrain.ingest.pdf.pypdf.PdfReader", return_value=_mock_reader(["Page one.", "  ", None, "Page three."])):
        assert PdfExtractor().extract(artifact) == "Page one.\nPage three."


def test_pdf_corrupt_payload_is_empty():
    artifact = Artifact.from_payload(b"definitely not a pdf", PDF_MIME)
    assert PdfExtractor().extract(artifact) == ""


def test_pdf_no_payload_is_empty():
    assert PdfExtractor().extract(Artifact(kind=ArtifactKind.PDF)) == ""


# ------------------------------------------------------------------
# DOCX
# ------------------------------------------------------------------


def test_docx_paragraphs_one_per_line():
    artifact = Artifact.from_payload(_docx(["First paragraph.", "Second paragraph."]), DOCX_MIME)
    assert DocxExtractor().extract(artifact) == "First paragraph.\nSecond paragraph."


def test_docx_corrupt_payload_is_empty():
    assert DocxExtractor().extract(Artifact.from_payload(b"not a zip", DOCX_MIME)) == ""


# ------------------------------------------------------------------
# PPTX
# ------------------------------------------------------------------


def test_pptx_slides_in_lexical_order():
    data = _pptx(
        {
            "ppt/slides/slide2.xml": ["Second", "slide"],
            "ppt/slides/slide1.xml": ["First", "slide"],
        }
    )
    text = PptxExtractor().extract(Artifact.from_payload(data, PPTX_MIME))
    assert text == "First slide\n\nSecond slide"


def test_pptx_lexical_order_puts_slide10_before_slide2():
    data = _pptx(
        {
            "ppt/slides/slide2.xml": ["two"],
            "ppt/slides/slide10.xml": ["ten"],
            "ppt/slides/slide1.xml": ["one"],
        }
    )
    text = PptxExtractor().extract(Artifact.from_payload(data, PPTX_MIME))
    assert text.split("\n\n") == ["one", "ten", "two"]


def test_pptx_ignores_layouts_and_empty_slides():
    data = _pptx({"ppt/slides/slide1.xml": ["Only"], "ppt/slides/slide2.xml": []})
    text = PptxExtractor().extract(Artifact.from_payload(data, PPTX_MIME))
    assert text == "Only"


def test_pptx_corrupt_payload_is_empty():
    assert PptxExtractor().extract(Artifact.from_payload(b"not a zip", PPTX_MIME)) == ""


def test_pptx_line_break_splits_runs():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr(
            "ppt/slides/slide1.xml",
            _SLIDE_XML.format(runs="<a:p><a:r><a:t>one</a:t></a:r><a:br/><a:r><a:t>two</a:t></a:r></a:p>"),
        )
    text = PptxExtractor().extract(Artifact.from_payload(buffer.getvalue(), PPTX_MIME))
    assert text == "one\ntwo"


def test_pptx_encrypted_member_is_empty():
    data = bytearray(_pptx({"ppt/slides/slide1.xml": ["Secret"]}))
    # Set the encryption bit on every central directory entry.
    offset = data.find(b"PK\x01\x02")
    while offset != -1:
        data[offset + 8] |= 0x01
        offset = data.find(b"PK\x01\x02", offset + 4)
    assert PptxExtractor().extract(Artifact.from_payload(bytes(data), PPTX_MIME)) == ""


# ------------------------------------------------------------------
# Image / audio
# ------------------------------------------------------------------


def test_image_ocr_text():
    backend = FakeBackend(ocr_text="  Whiteboard notes \n")
    artifact = Artifact.from_payload(b"\x89PNG", "image/png")
    assert ImageExtractor(backend).extract(artifact) == "Whiteboard notes"


def test_image_without_backend_is_empty():
    assert ImageExtractor(NullBackend()).extract(Artifact.from_payload(b"\x89PNG", "image/png")) == ""


def test_image_ocr_error_is_empty():
    class Broken(FakeBackend):
        def ocr_image(self, data, mime):
            raise RuntimeError("vision model unavailable")

    assert ImageExtractor(Broken()).extract(Artifact.from_payload(b"\x89PNG", "image/png")) == ""


def test_audio_always_empty():
    assert AudioExtractor().extract(Artifact.from_payload(b"ID3", "audio/mpeg", "memo.mp3")) == ""
