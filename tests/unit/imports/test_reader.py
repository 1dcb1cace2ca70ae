import io
from datetime import datetime

import pytest
from openpyxl import Workbook, load_workbook

from app.core.exceptions import ParseError
from app.services.imports.reader import build_table, cell_text, read_table
from app.services.imports.template import (
    TEMPLATE_HEADERS,
    TEMPLATE_ROWS,
    build_template_csv,
    build_template_workbook,
)


def xlsx_bytes(rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.mark.parametrize("value, expected", [
    (None, ""),
    ("  An \xa0", "An"),
    (912345678.0, "912345678"),
    (1.5, "1.5"),
    (datetime(1990, 5, 15), "1990-05-15"),
    (True, "True"),
])
def test_cell_text(value, expected):
    assert cell_text(value) == expected


def test_csv_with_bom_and_semicolons():
    content = "\ufeffHọ tên;SĐT\nNguyễn A;0912345678\nB;0987654321\n".encode("utf-8")

    table = read_table("khach.csv", content)

    assert table.headers == ("Họ tên", "SĐT")
    assert table.rows[0] == ("Nguyễn A", "0912345678")
    assert table.row_count == 2


def test_csv_skips_blank_rows_and_pads_short_rows():
    content = "Họ tên,SĐT,Email\n\nA,0912345678\n,,\n".encode("utf-8")

    table = read_table("khach.csv", content)

    assert table.rows == (("A", "0912345678", ""),)


def test_xlsx_reads_first_sheet():
    content = xlsx_bytes([["Họ tên", "SĐT"], ["A", "0912345678"], [None, None], ["B", 987654321]])

    table = read_table("khach.xlsx", content)

    assert table.headers == ("Họ tên", "SĐT")
    assert table.row_count == 2
    assert table.rows[1][1] == 987654321


def test_blank_header_cells_get_column_names():
    table = build_table([["Họ tên", None, "SĐT", ""], ["A", "x", "0912345678", ""]])

    assert table.headers == ("Họ tên", "Cột 2", "SĐT")
    assert table.rows[0] == ("A", "x", "0912345678")


@pytest.mark.parametrize("filename, content", [
    ("khach.pdf", b"%PDF"),
    ("khach.csv", b""),
    ("khach.csv", "Họ tên,SĐT\n".encode("utf-8")),
    ("khach.csv", b"\xff\xfe\x00bad"),
    ("khach.xlsx", b"not a zip file"),
])
def test_unreadable_files_raise_parse_error(filename, content):
    with pytest.raises(ParseError) as exc_info:
        read_table(filename, content)
    assert exc_info.value.status_code == 400


def test_row_and_size_limits():
    content = "SĐT\n0911111111\n0922222222\n".encode("utf-8")

    with pytest.raises(ParseError) as exc_info:
        read_table("khach.csv", content, max_rows=1)
    assert exc_info.value.details == {"rows": 2, "max_rows": 1}

    with pytest.raises(ParseError):
        read_table("khach.csv", content, max_size=10)


def test_template_workbook_round_trips_through_reader():
    content = build_template_workbook()

    table = read_table("mau.xlsx", content)

    assert table.headers == TEMPLATE_HEADERS
    assert table.row_count == len(TEMPLATE_ROWS)
    assert table.rows[0][1] == "0912345678"

    sheet = load_workbook(io.BytesIO(content)).active
    assert sheet["A1"].font.bold
    assert sheet["B2"].number_format == "@"


def test_template_csv():
    lines = build_template_csv().splitlines()
    assert lines[0] == ",".join(TEMPLATE_HEADERS)
    assert len(lines) == len(TEMPLATE_ROWS) + 1
