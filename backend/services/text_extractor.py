"""Plain-text extraction from uploaded resume documents.

A single dispatch table maps the declared mime type to a reader.
Extraction failures are structural: nothing here is retried.
"""

import logging
from pathlib import Path
from typing import Callable

import pdfplumber

from services.errors import EmptyDocument, UnreadableDocument, UnsupportedFormat

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"


def _extract_pdf(path: Path) -> str:
    """Extract all text from a PDF file."""
    with pdfplumber.open(path) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(pages)


def _extract_docx(path: Path) -> str:
    """Extract all paragraph text from a DOCX file."""
    from docx import Document

    doc = Document(str(path))
    return "\n".join(p.text for p in doc.paragraphs)


def _extract_plaintext(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


EXTRACTORS: dict[str, Callable[[Path], str]] = {
    PDF_MIME: _extract_pdf,
    DOCX_MIME: _extract_docx,
    TEXT_MIME: _extract_plaintext,
}

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset(EXTRACTORS)


def _normalize_mime(mime_type: str) -> str:
    # "text/plain; charset=utf-8" -> "text/plain"
    return (mime_type or "").split(";", 1)[0].strip().lower()


def ensure_supported(mime_type: str) -> str:
    """Return the normalized mime type or raise UnsupportedFormat."""
    normalized = _normalize_mime(mime_type)
    if normalized not in EXTRACTORS:
        raise UnsupportedFormat(mime_type)
    return normalized


def extract(path: str | Path, mime_type: str) -> str:
    """Extract plain text from the document at ``path``.

    Raises UnsupportedFormat for unknown mime types, UnreadableDocument when
    the parser rejects the file and EmptyDocument when it yields no text.
    """
    reader = EXTRACTORS[ensure_supported(mime_type)]
    try:
        text = reader(Path(path)).strip()
    except OSError:
        raise
    except Exception as e:
        # parser errors on a corrupt file
        raise UnreadableDocument(str(path), str(e)) from e
    if not text:
        raise EmptyDocument(str(path))
    logger.debug("Extracted %d chars from %s", len(text), path)
    return text
