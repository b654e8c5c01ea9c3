"""
PDF text extraction for government price-list documents.

Pure text boundary: pages are read in order with pdfplumber and joined with
a newline so blocks that run across a page break stay contiguous. No layout
or column inference happens here.
"""

from __future__ import annotations

import io
import logging
from typing import List, Union

import pdfplumber

from pharmagtn.errors import NoExtractableTextError, UnreadableDocumentError

__all__ = ["extract_pdf_pages", "extract_pdf_text"]

logger = logging.getLogger(__name__)


def extract_pdf_pages(data: Union[bytes, bytearray]) -> List[str]:
    """Return the text of every page, in page order.

    Raises:
        UnreadableDocumentError: corrupt, truncated or password-protected PDF.
    """
    if not data:
        raise UnreadableDocumentError("Leeg PDF-bestand")

    pages: List[str] = []
    try:
        with pdfplumber.open(io.BytesIO(bytes(data))) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
    except Exception as exc:
        logger.info("PDF could not be opened: %s", exc)
        raise UnreadableDocumentError(
            f"PDF kon niet worden gelezen (beschadigd of met wachtwoord beveiligd): {exc}"
        ) from exc
    return pages


def extract_pdf_text(data: Union[bytes, bytearray]) -> str:
    """Return the concatenated text of all pages.

    Raises:
        UnreadableDocumentError: the document cannot be opened.
        NoExtractableTextError: the document has no text layer (scanned PDF);
            callers should ask for a spreadsheet instead.
    """
    pages = extract_pdf_pages(data)
    text = "\n".join(page.replace("\u00A0", " ") for page in pages)
    if not text.strip():
        raise NoExtractableTextError(
            "PDF bevat geen tekst (gescand?); upload de prijslijst als .xlsx of .csv"
        )
    logger.debug("Extracted %d characters from %d pages", len(text), len(pages))
    return text
