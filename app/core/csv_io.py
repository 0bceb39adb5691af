"""
Tabular import/export adapter.

Uploads are parsed with the stdlib csv reader: header names are trimmed and lowercased, data rows
are numbered by their line in the file (the header is row 1) so per-row errors read "Row N: <reason>" against the
file the user opened. Exports are built in memory as CSV text or an openpyxl workbook.
"""

import csv
import io
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from fastapi import Response
from openpyxl import Workbook
from openpyxl.styles import Font

from app.core.exceptions import CsvFormatError

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CsvRow = Tuple[int, Dict[str, str]]


def parse_csv(content: bytes, required: Sequence[str], max_rows: int) -> List[CsvRow]:
    """Return (row_number, row) pairs; raises CsvFormatError for file-level problems."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise CsvFormatError("File must be a UTF-8 encoded CSV")
    if not text.strip():
        raise CsvFormatError("File is empty")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise CsvFormatError("CSV must have header and at least one data row")
    reader.fieldnames = [(h or "").strip().lower() for h in reader.fieldnames]

    missing = [f for f in required if f not in reader.fieldnames]
    if missing:
        raise CsvFormatError(f"Missing required columns: {', '.join(missing)}")

    rows: List[CsvRow] = []
    for raw in reader:
        if len(rows) >= max_rows:
            raise CsvFormatError(f"Maximum {max_rows} data rows allowed")
        # Surplus cells land under the None key
        row = {k: (v or "").strip() for k, v in raw.items() if k is not None}
        rows.append((reader.line_num, row))

    if not rows:
        raise CsvFormatError("CSV must have header and at least one data row")
    return rows


def parse_optional_int(value: str, field: str) -> Any:
    """Blank → None; otherwise an int or ValueError naming the column."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid {field}: {value}")


def build_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buf.getvalue()


def build_xlsx(title: str, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    # Sheet titles are capped at 31 characters
    ws.title = title[:31]
    ws.append(list(header))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(["" if v is None else v for v in row])
    ws.freeze_panes = "A2"
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def attachment(content: Any, filename: str, media_type: str = CSV_MEDIA_TYPE) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
