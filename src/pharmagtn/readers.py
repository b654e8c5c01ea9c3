from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from pharmagtn.errors import NoRowsError, UndecodableFileError, UnreadableFileError, UnsupportedFormatError
from pharmagtn.settings import CSV_DELIMITERS, CSV_ENCODINGS, CSV_EXTENSIONS, EXCEL_EXTENSIONS

__all__ = [
    "TabularData",
    "read_table",
    "read_bytes",
    "detect_format",
    "sniff_delimiter",
]

logger = logging.getLogger(__name__)

FileInput = Union[bytes, bytearray, str, io.BufferedIOBase, io.BytesIO, io.StringIO, io.TextIOBase]
NumberedRow = Tuple[int, List[str]]


@dataclass
class TabularData:
    header: List[str]
    records: List[Dict[str, str]] = field(default_factory=list)
    source_format: str = "csv"
    row_numbers: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def row_number(self, index: int) -> int:
        """1-based source row of ``records[index]``, as a spreadsheet shows it."""
        if index < len(self.row_numbers):
            return self.row_numbers[index]
        return index + 2


def _get_file_extension(name: Optional[str]) -> str:
    if not name or not isinstance(name, str):
        return ""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def _remember_position(file_obj) -> Optional[int]:
    if hasattr(file_obj, "tell") and hasattr(file_obj, "seek"):
        try:
            return file_obj.tell()
        except (OSError, io.UnsupportedOperation):
            return None
    return None


def _restore_position(file_obj, position: Optional[int]) -> None:
    if position is None:
        return
    try:
        file_obj.seek(position)
    except (OSError, io.UnsupportedOperation):
        pass


def read_bytes(data: FileInput) -> Union[bytes, str]:
    """Return the full content of an upload without moving its cursor."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        return data
    position = _remember_position(data)
    if position is not None:
        try:
            data.seek(0)
        except (OSError, io.UnsupportedOperation):
            position = None
    raw = data.read()
    _restore_position(data, position)
    return raw


def detect_format(filename: Optional[str] = None, file_format: Optional[str] = None) -> str:
    extension = (file_format or _get_file_extension(filename)).lower().lstrip(".")
    if extension in CSV_EXTENSIONS:
        return "csv"
    if extension in EXCEL_EXTENSIONS:
        return extension
    raise UnsupportedFormatError(
        f"Niet ondersteund bestandsformaat '{extension or filename or '?'}': gebruik .csv, .xlsx of .xls"
    )


def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, str):
        return raw
    for encoding in CSV_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UndecodableFileError("Bestand kan niet worden gedecodeerd (verwacht UTF-8 of Windows-1252)")


def sniff_delimiter(header_line: str) -> str:
    counts = {delimiter: header_line.count(delimiter) for delimiter in CSV_DELIMITERS}
    best = max(counts.values())
    if best == 0:
        return ","
    for delimiter in CSV_DELIMITERS:
        if counts[delimiter] == best:
            return delimiter
    return ","


def _is_blank_row(row: List[str]) -> bool:
    return not any(str(cell).strip() for cell in row)


def _read_csv_rows(text: str) -> List[NumberedRow]:
    lines = text.splitlines()
    header_line = next((line for line in lines if line.strip()), "")
    delimiter = sniff_delimiter(header_line)
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    # line_num is the physical line where the record ends.
    return [(reader.line_num, row) for row in reader if not _is_blank_row(row)]


def _read_first_sheet_rows(raw: bytes, extension: str) -> List[NumberedRow]:
    engine = "xlrd" if extension == "xls" else "openpyxl"
    try:
        frame = pd.read_excel(io.BytesIO(raw), sheet_name=0, dtype=str, header=None, engine=engine)
    except Exception as exc:
        raise UnreadableFileError(f"Excel-bestand kan niet worden gelezen: {exc}") from exc

    rows = frame.fillna("").astype(str).values.tolist()
    return [(number, row) for number, row in enumerate(rows, start=1) if not _is_blank_row(row)]


def _rows_to_table(rows: List[NumberedRow], source_format: str) -> TabularData:
    if not rows:
        raise NoRowsError("Bestand bevat geen rijen")

    header = [str(cell).strip() for cell in rows[0][1]]
    if header:
        header[0] = header[0].lstrip("\ufeff").strip()
    while header and not header[-1]:
        header.pop()
    if not header:
        raise NoRowsError("Bestand bevat geen kopregel")

    width = len(header)
    records: List[Dict[str, str]] = []
    row_numbers: List[int] = []
    for number, row in rows[1:]:
        cells = [str(cell) for cell in row[:width]]
        cells += [""] * (width - len(cells))
        record: Dict[str, str] = {}
        for name, cell in zip(header, cells):
            if name not in record:
                record[name] = cell.strip()
        records.append(record)
        row_numbers.append(number)

    if not records:
        raise NoRowsError("Bestand bevat alleen een kopregel, geen datarijen")
    return TabularData(header=header, records=records, source_format=source_format, row_numbers=row_numbers)


def read_table(
    data: FileInput,
    filename: Optional[str] = None,
    file_format: Optional[str] = None,
) -> TabularData:
    """Read an uploaded CSV or the first sheet of a workbook into header/records.

    Every value is kept as its display string; number and period parsing
    happen later in the row normalizer.
    """
    name = filename or getattr(data, "name", None)
    source_format = detect_format(name, file_format)
    raw = read_bytes(data)

    if source_format == "csv":
        rows = _read_csv_rows(_decode(raw))
    else:
        if isinstance(raw, str):
            raise UnreadableFileError("Excel-bestand kan niet als tekst worden gelezen")
        rows = _read_first_sheet_rows(raw, source_format)

    table = _rows_to_table(rows, source_format)
    logger.debug("Read %d records with %d columns from %s", len(table), len(table.header), name or source_format)
    return table
