"""Text extraction for uploaded files.

PDFs go through ``pypdf``; every other format is decoded as UTF-8 text
with replacement characters for undecodable bytes.
"""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader

logger = logging.getLogger(__name__)

PDF_MIMETYPE = "application/pdf"


def is_pdf(mimetype: str | None, filename: str | None = None) -> bool:
    """Return ``True`` when the upload should be parsed as a PDF."""
    if mimetype and mimetype.lower().split(";")[0].strip() == PDF_MIMETYPE:
        return True
    return bool(filename) and filename.lower().endswith(".pdf")


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text of every page of a PDF."""
    reader = PdfReader(io.BytesIO(data))
    pages = [page.extract_text() or "" for page in reader.pages]
    logger.debug("Extracted text from %d PDF pages", len(pages))
    return "\n".join(pages)


def extract_text(data: bytes, mimetype: str | None = None, filename: str | None = None) -> str:
    """Extract plain text from an uploaded file.

    Parameters
    ----------
    data:
        Raw file bytes.
    mimetype:
        Content type reported by the client, if any.
    filename:
        Original filename; its extension is used when the content type
        is missing or generic.

    Returns
    -------
    str
        The extracted text. May be empty; callers decide whether that is
        an error.
    """
    if is_pdf(mimetype, filename):
        return extract_pdf_text(data)
    return data.decode("utf-8", errors="replace")
