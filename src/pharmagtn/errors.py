from __future__ import annotations

__all__ = [
    "IngestionError",
    "UnsupportedFormatError",
    "UndecodableFileError",
    "UnreadableFileError",
    "NoRowsError",
    "UnreadableDocumentError",
    "NoExtractableTextError",
]


class IngestionError(ValueError):
    """Fatal input condition: nothing usable can be produced from the upload."""


class UnsupportedFormatError(IngestionError):
    pass


class UndecodableFileError(IngestionError):
    pass


class UnreadableFileError(IngestionError):
    pass


class NoRowsError(IngestionError):
    pass


class UnreadableDocumentError(IngestionError):
    """Corrupt or password-protected PDF."""


class NoExtractableTextError(IngestionError):
    """PDF without a text layer, usually a scan."""
