from __future__ import annotations

import io
import logging
from datetime import date, datetime, time
from typing import Any, List, Sequence
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import IllegalCharacterError, InvalidFileException

from equipment_portal.errors import MalformedInput, UnreadableWorkbook

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Sheet1"
MIN_COLUMN_WIDTH = 20


def _json_cell(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def read_rows(content: bytes) -> List[List[Any]]:
    """
    Returns the occupied rectangle of the first worksheet, starting at A1.
    Empty cells come back as None; an empty sheet gives [].
    """
    try:
        wb = load_workbook(io.BytesIO(content), data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError) as exc:
        raise UnreadableWorkbook("Could not read Excel file", exc) from exc

    ws = wb.worksheets[0]
    if ws.max_row == 1 and ws.max_column == 1 and ws.cell(row=1, column=1).value is None:
        return []

    rows = [
        [_json_cell(value) for value in row]
        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column, values_only=True)
    ]
    while rows and all(value in (None, "") for value in rows[-1]):
        rows.pop()
    return rows


def write_rows(rows: Sequence[Sequence[Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    for row in rows:
        try:
            ws.append(list(row))
        except (IllegalCharacterError, ValueError) as exc:
            raise MalformedInput("Cell value cannot be stored in a worksheet", exc) from exc

    # text that looks like a formula stays text
    for row in ws.iter_rows():
        for cell in row:
            if isinstance(cell.value, str) and cell.value.startswith("="):
                cell.data_type = "s"

    width = max((len(row) for row in rows), default=0)
    for idx in range(1, width + 1):
        ws.column_dimensions[get_column_letter(idx)].width = MIN_COLUMN_WIDTH

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
