# parsers.py
from __future__ import annotations
import io
import logging
from typing import List, Optional

from docx import Document
from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class ExtractionError(ValueError):
    """The uploaded file could not be turned into text."""


def detect_kind(filename: str, mimetype: str = "") -> Optional[str]:
    """Return "pdf", "docx" or None.

    The declared mimetype wins; browsers often send octet-stream, so fall
    back to the extension.
    """
    if mimetype == PDF_MIME:
        return "pdf"
    if mimetype == DOCX_MIME:
        return "docx"
    ext = filename.rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
    return ext if ext in ("pdf", "docx") else None


def _extract_text_from_pdf(file_bytes: bytes) -> str:
    """Extract visible text from a PDF using pypdf.

    This ignores images (no OCR), but grabs all text from all pages.
    """
    try:
        reader = PdfReader(io.BytesIO(file_bytes))
        chunks: List[str] = []
        for page in reader.pages:
            t = page.extract_text() or ""
            if t:
                chunks.append(t)
    except (PyPdfError, ValueError, OSError) as e:
        raise ExtractionError("Could not extract text from this PDF") from e
    text = "\n".join(chunks)
    logger.info("PDF text length: %d chars", len(text))
    return text


def _extract_text_from_docx(file_bytes: bytes) -> str:
    try:
        doc = Document(io.BytesIO(file_bytes))
    except Exception as e:
        # python-docx surfaces zip, xml and package errors with different types
        raise ExtractionError("Could not extract text from this DOCX") from e
    lines = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    text = "\n".join(lines)
    logger.info("DOCX text length: %d chars", len(text))
    return text


def extract_text(file_bytes: bytes, kind: str) -> str:
    if kind == "pdf":
        return _extract_text_from_pdf(file_bytes)
    if kind == "docx":
        return _extract_text_from_docx(file_bytes)
    raise ExtractionError(f"Unsupported file type: {kind}")
