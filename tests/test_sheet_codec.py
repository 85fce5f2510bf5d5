import pytest

from equipment_portal.errors import ColumnLayoutMismatch
from equipment_portal.schemas import EquipmentRecord
from equipment_portal.services import sheet_codec


def _records():
    return [
        EquipmentRecord(
            device_type="Defibrillator",
            manufacturer="Zoll",
            model="R Series",
            serial="AF12345",
            notes="Battery replaced 2024",
            selected=True,
        ),
        EquipmentRecord(device_type="Suction Unit", manufacturer="Laerdal", model="LSU", serial="78230"),
        EquipmentRecord(serial="SN-ONLY"),
    ]


def _sheet(data_rows, header_row=None):
    header = [
        ["", "", "", "Letterhead"],
        ["", "", "Client: Acme Corp", "Org"],
        ["", "", "123 Main St", "Address"],
        ["", "", "Toronto, ON", "City"],
        ["", "", "416-555-0100", "Phone"],
        [],
    ]
    return header + [header_row if header_row is not None else list(sheet_codec.COLUMN_TITLES)] + data_rows


def test_encode_then_decode_keeps_records():
    records = _records()
    decoded = sheet_codec.decode(sheet_codec.encode(None, records))
    assert decoded.records == records


def test_encode_layout():
    rows = sheet_codec.encode(None, _records())

    assert len(rows) == 7 + 3
    assert all(len(row) == len(sheet_codec.COLUMNS) for row in rows)
    assert rows[5] == [""] * 6
    assert rows[6] == ["Device Type", "Manufacturer", "Model", "Serial Number", "Notes", "Selected"]
    assert rows[7] == ["Defibrillator", "Zoll", "R Series", "AF12345", "Battery replaced 2024", "Yes"]
    assert rows[8][-1] == "No"
    assert [rows[i][3] for i in range(1, 5)] == sheet_codec.LETTERHEAD_LINES
    assert [rows[i][2] for i in range(1, 5)] == ["", "", "", ""]
    assert rows[0] == [""] * 6


def test_encode_keeps_only_client_info_from_header_block():
    header_block = [
        ["a", "b", "Client: Acme", "old org", "x"],
        ["", "", "55 King St", "old address"],
        ["", "", "Ottawa, ON", "old city"],
        ["", "", "613-555-0199", "old phone"],
        ["ignored", "ignored", "ignored"],
        ["ignored"],
    ]
    rows = sheet_codec.encode(header_block, [])

    assert [rows[i][2] for i in range(1, 5)] == ["Client: Acme", "55 King St", "Ottawa, ON", "613-555-0199"]
    assert [rows[i][3] for i in range(1, 5)] == sheet_codec.LETTERHEAD_LINES
    assert rows[0] == [""] * 6
    assert "ignored" not in rows[4]


def test_encode_ignores_short_header_block():
    rows = sheet_codec.encode([["", "", "Client"], ["", "", "Street"]], [])
    assert [rows[i][2] for i in range(1, 5)] == ["", "", "", ""]


def test_decode_captures_header_block():
    decoded = sheet_codec.decode(_sheet([["Monitor", "Philips", "MX450", "DE1234", "", "Yes"]]))

    assert len(decoded.header_block) == 6
    assert all(len(row) == 6 for row in decoded.header_block)
    assert decoded.header_block[1][2] == "Client: Acme Corp"
    assert decoded.header_block[5] == [""] * 6


def test_decode_replaces_missing_cells_with_empty_strings():
    rows = [[None, "x"], ["a"]]
    decoded = sheet_codec.decode(rows)
    assert decoded.header_block == [["", "x"], ["a", ""]]
    assert decoded.records == []


def test_short_sheet_yields_no_records():
    rows = _sheet([])[:6]
    decoded = sheet_codec.decode(rows)
    assert decoded.records == []
    assert len(decoded.header_block) == 6

    decoded = sheet_codec.decode(_sheet([]))
    assert decoded.records == []


def test_empty_sheet():
    decoded = sheet_codec.decode([])
    assert decoded.header_block == []
    assert decoded.records == []


def test_missing_selected_is_false():
    decoded = sheet_codec.decode(_sheet([["Pump", "Baxter", "Sigma", "S-1"]]))
    assert decoded.records == [
        EquipmentRecord(device_type="Pump", manufacturer="Baxter", model="Sigma", serial="S-1")
    ]


@pytest.mark.parametrize("value", ["yes", "YES", "Y", True, "Yes ", None, "No"])
def test_only_exact_yes_selects(value):
    decoded = sheet_codec.decode(_sheet([["Pump", "", "", "", "", value]]))
    assert decoded.records[0].selected is False


def test_rows_without_identifying_fields_are_dropped():
    decoded = sheet_codec.decode(
        _sheet(
            [
                ["", "", "", "", "just a note", "Yes"],
                [None, None, None, None, None, None],
                ["Scale", "", "", "", "", ""],
            ]
        )
    )
    assert [record.device_type for record in decoded.records] == ["Scale"]


def test_decode_keeps_row_order_and_stringifies_numbers():
    decoded = sheet_codec.decode(
        _sheet(
            [
                ["Zeta", "", "", 1200.0, "", "No"],
                ["Alpha", "", 300, "", 4.5, "Yes"],
            ]
        )
    )
    assert [record.device_type for record in decoded.records] == ["Zeta", "Alpha"]
    assert decoded.records[0].serial == "1200"
    assert decoded.records[1].model == "300"
    assert decoded.records[1].notes == "4.5"
    assert decoded.records[1].selected is True


def test_column_titles_are_matched_loosely():
    header = ["device type ", "MANUFACTURER", "Model", "Serial  Number", "Notes"]
    decoded = sheet_codec.decode(_sheet([["Bed", "Stryker", "S3", "B-9", "", "No"]], header_row=header))
    assert decoded.records[0].device_type == "Bed"


def test_blank_column_header_row_is_accepted():
    decoded = sheet_codec.decode(_sheet([["Bed", "Stryker", "S3", "B-9"]], header_row=["", None]))
    assert decoded.records[0].serial == "B-9"


def test_reordered_columns_are_rejected():
    header = ["Manufacturer", "Device Type", "Model", "Serial Number", "Notes", "Selected"]
    with pytest.raises(ColumnLayoutMismatch) as excinfo:
        sheet_codec.decode(_sheet([["Stryker", "Bed", "S3", "B-9"]], header_row=header))
    assert "expected 'Device Type'" in excinfo.value.details
