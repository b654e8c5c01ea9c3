from __future__ import annotations

import pytest

from pharmagtn.errors import IngestionError, NoExtractableTextError, UnreadableDocumentError
from pharmagtn.pdf_text import extract_pdf_pages, extract_pdf_text


def test_extract_pdf_text_reads_pages_in_order(make_pdf):
    data = make_pdf([["Productgroep Maximumprijs", "0,0123 per stuk"], ["Registratienummer Artikelnaam", "RVG 12345 Tablet"]])

    pages = extract_pdf_pages(data)
    text = extract_pdf_text(data)

    assert len(pages) == 2
    assert "Productgroep Maximumprijs" in pages[0]
    assert "RVG 12345 Tablet" in pages[1]
    assert text.index("0,0123 per stuk") < text.index("Registratienummer")


def test_extract_pdf_text_rejects_corrupt_bytes():
    with pytest.raises(UnreadableDocumentError):
        extract_pdf_text(b"this is not a pdf")
    with pytest.raises(UnreadableDocumentError):
        extract_pdf_text(b"")


def test_extract_pdf_text_flags_documents_without_text(make_pdf):
    with pytest.raises(NoExtractableTextError) as excinfo:
        extract_pdf_text(make_pdf([[]]))

    assert isinstance(excinfo.value, IngestionError)
    assert ".xlsx" in str(excinfo.value)
