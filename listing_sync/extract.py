# listing_sync/extract.py
"""Spreadsheet access and row extraction.

`SnapshotWorkbook` wraps an openpyxl workbook and exposes every cell as
text. `extract_row` turns one raw row into a `SnapshotRow` using the column
positions of a schema variant.
"""
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from io import BytesIO
from typing import Dict, List, Optional
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from .errors import SnapshotError
from .variants import SchemaVariant


def cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


class SnapshotWorkbook:
    """Read-only text view of an uploaded .xlsx file."""

    def __init__(self, data: bytes):
        try:
            wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
            raise SnapshotError(f"Failed to read spreadsheet: {e}") from e
        try:
            self._sheets = {ws.title: self._read_sheet(ws) for ws in wb.worksheets}
        finally:
            wb.close()

    @staticmethod
    def _read_sheet(ws) -> List[List[str]]:
        rows = []
        for values in ws.iter_rows(values_only=True):
            row = [cell_text(v) for v in values]
            while row and row[-1] == "":
                row.pop()
            rows.append(row)
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def sheet_names(self) -> List[str]:
        return list(self._sheets)

    def rows(self, sheet: str) -> List[List[str]]:
        return self._sheets[sheet]

    def cell(self, sheet: str, column: int, row: int) -> Optional[str]:
        """Cell text by 0-based column and 1-based row, None when outside the sheet."""
        rows = self._sheets[sheet]
        if row < 1 or row > len(rows):
            return None
        cells = rows[row - 1]
        if column < 0 or column >= len(cells):
            return None
        return cells[column]


def data_rows(workbook: SnapshotWorkbook) -> List[List[str]]:
    """Return the data rows of the first sheet, header excluded.

    Raises SnapshotError when there is no sheet or no data row.
    """
    sheets = workbook.sheet_names()
    if not sheets:
        raise SnapshotError("no sheets found")
    rows = workbook.rows(sheets[0])
    if len(rows) < 2:
        raise SnapshotError("file must have at least header and one data row")
    return rows[1:]


@dataclass
class SnapshotRow:
    row_number: int
    key: str
    status: str
    fields: Dict[str, str]
    photos: List[str] = field(default_factory=list)


def _read(cells: List[str], position: int) -> str:
    return cells[position] if position < len(cells) else ""


def extract_row(cells: List[str], variant: SchemaVariant, row_number: int = 0) -> SnapshotRow:
    fields = {name: _read(cells, variant.column_for(name)) for name in variant.fields}
    status = fields[variant.status_field] if variant.status_field else ""
    if not status and variant.default_status is not None:
        status = variant.default_status
    photos = []
    for position in variant.photo_positions:
        link = _read(cells, position).strip()
        if link:
            photos.append(link)
    return SnapshotRow(
        row_number=row_number,
        key=fields[variant.key_field],
        status=status,
        fields=fields,
        photos=photos,
    )
