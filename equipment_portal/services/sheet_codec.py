from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from equipment_portal.errors import ColumnLayoutMismatch
from equipment_portal.schemas import EquipmentRecord, HeaderBlock, cell_text

logger = logging.getLogger(__name__)

HEADER_ROWS = 6
COLUMN_HEADER_ROW = 6

# (record attribute, column title) in sheet order
COLUMNS = [
    ("device_type", "Device Type"),
    ("manufacturer", "Manufacturer"),
    ("model", "Model"),
    ("serial", "Serial Number"),
    ("notes", "Notes"),
    ("selected", "Selected"),
]
COLUMN_TITLES = [title for _, title in COLUMNS]
TEXT_FIELDS = [name for name, _ in COLUMNS[:5]]

SELECTED_YES = "Yes"
SELECTED_NO = "No"

LETTERHEAD_ROWS = 5
CLIENT_INFO_COLUMN = 2
LETTERHEAD_COLUMN = 3
LETTERHEAD_LINES = [
    "Northline Biomedical Services Inc.",
    "1200 Industrial Parkway, Unit 4",
    "Winnipeg, MB R3H 0T6",
    "Tel: (204) 555-0147",
]


@dataclass
class DecodedSheet:
    header_block: HeaderBlock = field(default_factory=list)
    records: List[EquipmentRecord] = field(default_factory=list)


def _pad(row: Sequence[Any], width: int) -> List[Any]:
    cells = ["" if value is None else value for value in row[:width]]
    return cells + [""] * (width - len(cells))


def _normalize_title(value: Any) -> str:
    return " ".join(cell_text(value).split()).lower()


def _check_column_headers(row: Sequence[Any]) -> None:
    """
    Compares the column-header row against COLUMNS.
    A blank row is accepted; the Selected title may be missing in older files.
    """
    if not any(_normalize_title(value) for value in row):
        return
    titles = [_normalize_title(value) for value in row[: len(COLUMNS)]]
    titles += [""] * (len(COLUMNS) - len(titles))

    expected = [title.lower() for title in COLUMN_TITLES]
    mismatched = [
        (index, COLUMN_TITLES[index], titles[index])
        for index in range(len(COLUMNS) - 1)
        if titles[index] != expected[index]
    ]
    if titles[-1] not in ("", expected[-1]):
        mismatched.append((len(COLUMNS) - 1, COLUMN_TITLES[-1], titles[-1]))
    if mismatched:
        detail = ", ".join(f"column {idx + 1}: expected '{want}', found '{got}'" for idx, want, got in mismatched)
        raise ColumnLayoutMismatch("Unexpected column layout in equipment sheet", detail)


def _row_to_record(row: Sequence[Any]) -> EquipmentRecord:
    values = list(row[: len(COLUMNS)])
    values += [None] * (len(COLUMNS) - len(values))
    data = {name: cell_text(values[index]) for index, name in enumerate(TEXT_FIELDS)}
    data["selected"] = values[5] == SELECTED_YES
    return EquipmentRecord(**data)


def decode(rows: Optional[Sequence[Sequence[Any]]]) -> DecodedSheet:
    """
    Splits an occupied cell rectangle into the header block and equipment records.

    Rows 0-5 are kept verbatim as the header block, row 6 holds the column
    titles and every later row is mapped positionally onto COLUMNS. Rows with
    no device type, manufacturer, model or serial are dropped.
    """
    if not rows:
        logger.debug("Sheet has no occupied cells")
        return DecodedSheet()

    width = max((len(row) for row in rows), default=0)
    header_block = [_pad(row, width) for row in rows[:HEADER_ROWS]]

    if len(rows) <= COLUMN_HEADER_ROW:
        logger.debug("Sheet has %d rows, no data region", len(rows))
        return DecodedSheet(header_block=header_block)

    _check_column_headers(rows[COLUMN_HEADER_ROW])

    records = []
    for row in rows[COLUMN_HEADER_ROW + 1 :]:
        record = _row_to_record(row)
        if record.is_empty():
            continue
        records.append(record)
    return DecodedSheet(header_block=header_block, records=records)


def _record_row(record: EquipmentRecord) -> List[Any]:
    row = [getattr(record, name) or "" for name in TEXT_FIELDS]
    row.append(SELECTED_YES if record.selected else SELECTED_NO)
    return row


def _client_info(header_block: HeaderBlock, index: int) -> Any:
    row = header_block[index] or []
    if len(row) <= CLIENT_INFO_COLUMN:
        return ""
    value = row[CLIENT_INFO_COLUMN]
    return "" if value is None else value


def encode(header_block: Optional[HeaderBlock], records: Iterable[EquipmentRecord]) -> List[List[Any]]:
    """
    Lays records out the way the downstream workbook expects:
    five letterhead rows, a blank row, the column titles, then one row per record.
    Only the client info cells (column 2 of header rows 0-3) carry over from header_block.
    """
    width = len(COLUMNS)
    rows: List[List[Any]] = [[""] * width for _ in range(LETTERHEAD_ROWS)]

    if header_block and len(header_block) >= 4:
        for index in range(4):
            rows[index + 1][CLIENT_INFO_COLUMN] = _client_info(header_block, index)

    for index, line in enumerate(LETTERHEAD_LINES):
        rows[index + 1][LETTERHEAD_COLUMN] = line

    rows.append([""] * width)
    rows.append(list(COLUMN_TITLES))
    rows.extend(_record_row(record) for record in records)
    return rows
