from datetime import datetime

import pytest

from app.services.imports.mapping import auto_map
from app.services.imports.normalizer import normalize_row, split_tags, synthesize_name
from app.services.imports.validator import RowErrorCode, validate_row
from app.utils.phone import format_phone_display, is_valid_local_phone, normalize_phone


@pytest.mark.parametrize("raw, expected", [
    ("+84 912 345 678", "0912345678"),
    ("84912345678", "0912345678"),
    ("0912.345.678", "0912345678"),
    ("(028) 3822-1234", "02838221234"),
    ("841234", "841234"),
    (912345678, "912345678"),
    (None, ""),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_local_phone_pattern():
    assert is_valid_local_phone("0912345678")
    assert is_valid_local_phone("02838221234")
    assert not is_valid_local_phone("12345")
    assert not is_valid_local_phone("0912")
    assert not is_valid_local_phone("09123abc78")


def test_format_phone_display():
    assert format_phone_display("0912345678").startswith("+84 9")
    assert format_phone_display("abc") == "abc"
    assert format_phone_display("") == ""


def test_split_tags_trims_and_dedupes():
    assert split_tags(" VIP, Sỉ ,,VIP , ") == ("VIP", "Sỉ")
    assert split_tags("") == ()


def test_synthesize_name_family_name_first():
    assert synthesize_name("An", "Nguyễn") == "Nguyễn An"
    assert synthesize_name("An", "") == "An"
    assert synthesize_name("", "") == ""


def test_normalize_row_maps_cells():
    mapping = auto_map(["Họ tên", "SĐT", "Email", "Tags", "Ngày sinh", "Ghi chú"])
    row = normalize_row(
        ["  Nguyễn Văn A ", "+84 912 345 678", None, "Karaoke, Đại lý", datetime(1990, 5, 15), ""],
        mapping,
        source_row_index=2,
    )

    assert row.source_row_index == 2
    assert row.name == "Nguyễn Văn A"
    assert row.phone == "0912345678"
    assert row.email == ""
    assert row.birthday == "1990-05-15"
    assert row.tags == frozenset({"Karaoke", "Đại lý"})
    assert row.tag_list == ("Karaoke", "Đại lý")
    assert row.note == ""
    assert "None" not in row.raw_cells


def test_normalize_row_synthesizes_name_from_parts():
    mapping = auto_map(["Tên", "Họ", "Điện thoại"])
    row = normalize_row(["An", "Trần", 912345678.0], mapping, source_row_index=3)

    assert row.name == "Trần An"
    assert row.phone == "912345678"


def test_normalize_row_blank_name_column_falls_back_to_parts():
    mapping = auto_map(["Họ tên", "Tên", "Họ", "SĐT"])
    row = normalize_row(["", "Bình", "Lê", "0911111111"], mapping, source_row_index=2)
    assert row.name == "Lê Bình"


def test_normalize_row_uses_rightmost_duplicate_column():
    mapping = auto_map(["SĐT", "Họ tên", "Điện thoại"])
    row = normalize_row(["0900000000", "A", "0911111111"], mapping, source_row_index=2)
    assert row.phone == "0911111111"


def test_record_fields_store_blanks_as_null():
    mapping = auto_map(["Họ tên", "SĐT"])
    fields = normalize_row(["A", "0912345678"], mapping, source_row_index=2).to_record_fields()

    assert fields["name"] == "A"
    assert fields["email"] is None
    assert fields["tags"] is None


@pytest.mark.parametrize("name, phone, codes", [
    ("A", "0912345678", []),
    ("", "0912345678", [RowErrorCode.MISSING_NAME]),
    ("A", "", [RowErrorCode.MISSING_PHONE]),
    ("", "", [RowErrorCode.MISSING_NAME, RowErrorCode.MISSING_PHONE]),
    ("A", "912345678", [RowErrorCode.INVALID_PHONE_FORMAT]),
])
def test_validate_row(name, phone, codes):
    mapping = auto_map(["Họ tên", "SĐT"])
    row = normalize_row([name, phone], mapping, source_row_index=2)
    assert [e.code for e in validate_row(row)] == codes


def test_validation_messages():
    mapping = auto_map(["Họ tên", "SĐT"])
    errors = validate_row(normalize_row(["", "abc"], mapping, source_row_index=2))
    assert [e.message for e in errors] == ["Thiếu tên", "SĐT không hợp lệ"]
