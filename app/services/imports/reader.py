# app/services/imports/reader.py
"""
Spreadsheet reader: uploaded bytes -> RawTable.

CSV/TXT files are decoded as UTF-8 (BOM tolerated) with the delimiter sniffed;
XLSX files are read from their first worksheet with openpyxl. The first
non-empty row is the header, every later row with at least one filled cell
is data.
"""
import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import PurePath
from typing import Any, List, Optional, Sequence, Tuple

from openpyxl import load_workbook

from app.core.config import settings
from app.core.exceptions import ParseError
from app.utils.datetime import format_cell_date

logger = logging.getLogger("crm_import.imports.reader")

CSV_EXTENSIONS = {".csv", ".txt"}
XLSX_EXTENSIONS = {".xlsx", ".xlsm"}
SUPPORTED_EXTENSIONS = CSV_EXTENSIONS | XLSX_EXTENSIONS
CSV_DELIMITERS = ",;\t|"


@dataclass(frozen=True)
class RawTable:
    """Parsed spreadsheet: header names plus rows of untyped cells."""
    headers: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)


def cell_text(value: Any) -> str:
    """
    Render a cell as trimmed text.

    Blank cells become "", whole-number floats lose their ".0" (spreadsheets
    store numbers as floats) and dates become YYYY-MM-DD.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return format_cell_date(value)
    return str(value).replace("\xa0", " ").strip()


def _is_blank_row(row: Sequence[Any]) -> bool:
    return not any(cell_text(v) for v in row)


def read_table(
    filename: str,
    content: bytes,
    max_rows: Optional[int] = None,
    max_size: Optional[int] = None,
) -> RawTable:
    """
    Parse an uploaded file.

    Args:
        filename: Original filename, used to pick the format
        content: Raw file bytes
        max_rows: Data row limit (defaults to settings.IMPORT_MAX_ROWS)
        max_size: Byte size limit (defaults to settings.IMPORT_MAX_FILE_SIZE)

    Returns:
        RawTable: Header row and data rows

    Raises:
        ParseError: Unsupported, unreadable, oversized or empty files
    """
    max_rows = max_rows or settings.IMPORT_MAX_ROWS
    max_size = max_size or settings.IMPORT_MAX_FILE_SIZE
    extension = PurePath(filename or "").suffix.lower()

    if extension not in SUPPORTED_EXTENSIONS:
        raise ParseError(
            f"Unsupported file type '{extension or filename}'",
            details={"allowed": sorted(SUPPORTED_EXTENSIONS)},
        )
    if not content:
        raise ParseError("File trống hoặc chỉ có header", details={"filename": filename})
    if len(content) > max_size:
        raise ParseError(
            f"File size exceeds {max_size // (1024 * 1024)}MB limit",
            details={"size": len(content), "max_size": max_size},
        )

    if extension in XLSX_EXTENSIONS:
        matrix = _read_xlsx(content)
    else:
        matrix = _read_csv(content)

    table = build_table(matrix, max_rows=max_rows)
    logger.info(f"Read {filename}: {len(table.headers)} columns, {table.row_count} data rows")
    return table


def build_table(matrix: Sequence[Sequence[Any]], max_rows: Optional[int] = None) -> RawTable:
    """Turn a cell matrix into a RawTable, skipping blank rows."""
    rows = [list(r) for r in matrix if not _is_blank_row(r)]
    if len(rows) < 2:
        raise ParseError("File trống hoặc chỉ có header", details={"rows": len(rows)})

    header_cells = [cell_text(v) for v in rows[0]]
    while header_cells and not header_cells[-1]:
        header_cells.pop()
    # Blank header cells in the middle still need a name to be mappable
    headers = tuple(h or f"Cột {i + 1}" for i, h in enumerate(header_cells))

    data = rows[1:]
    if max_rows is not None and len(data) > max_rows:
        raise ParseError(
            f"File has {len(data):,} rows, maximum allowed is {max_rows:,}",
            details={"rows": len(data), "max_rows": max_rows},
        )

    width = len(headers)
    padded = tuple(
        tuple(row[:width]) + ("",) * max(0, width - len(row))
        for row in data
    )
    return RawTable(headers=headers, rows=padded)


def _read_csv(content: bytes) -> List[List[str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("Không thể đọc file: file must be UTF-8 encoded", details={"reason": str(exc)}) from exc

    sample = text[:8192]
    try:
        delimiter = csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        delimiter = ","  # Default fallback

    try:
        return list(csv.reader(io.StringIO(text, newline=""), delimiter=delimiter))
    except csv.Error as exc:
        raise ParseError(f"Không thể đọc file: {exc}") from exc


def _read_xlsx(content: bytes) -> List[List[Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise ParseError(f"Không thể đọc file: {exc}") from exc

    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
