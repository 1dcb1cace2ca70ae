import pytest

from app.core.exceptions import MappingError, SessionStateError
from app.services.imports.duplicates import ExistingRecord, ExistingRecordIndex, build_patch
from app.services.imports.fields import CanonicalField
from app.services.imports.mapping import auto_map
from app.services.imports.normalizer import NormalizedRow
from app.services.imports.reader import build_table
from app.services.imports.session import ImportSession, SessionState
from app.services.imports.validator import RowErrorCode, validate_row
from app.utils.phone import normalize_phone


async def run_import(store, matrix):
    """Upload -> confirm -> execute against a record store."""
    session = ImportSession("tenant-test")
    session.load_table(build_table(matrix))
    index = ExistingRecordIndex(await store.fetch_existing("tenant-test"))
    session.confirm_mapping(index)
    result = await session.execute(store)
    return session, result


@pytest.mark.asyncio
async def test_scenario_a_single_new_row(fake_store):
    matrix = [["Họ tên", "SĐT", "Email"], ["Nguyễn Văn A", "0912345678", "a@x.com"]]

    mapping = auto_map(matrix[0])
    assert mapping.field_for("Họ tên") == CanonicalField.NAME
    assert mapping.field_for("SĐT") == CanonicalField.PHONE
    assert mapping.field_for("Email") == CanonicalField.EMAIL

    session, result = await run_import(fake_store, matrix)

    assert session.rows[0].status == "new"
    assert (result.inserted, result.updated, result.skipped) == (1, 0, 0)
    assert session.state == SessionState.COMPLETED


@pytest.mark.asyncio
async def test_scenario_b_same_phone_twice_in_one_file(fake_store):
    matrix = [["Họ tên", "SĐT"], ["B", "0987654321"], ["B2", "0987654321"]]

    session, result = await run_import(fake_store, matrix)

    records = fake_store.by_phone("0987654321")
    assert len(records) == 1
    assert records[0]["name"] == "B2"
    assert (result.inserted, result.updated, result.skipped) == (1, 1, 0)
    assert session.rows[1].duplicate_of_row == 2


@pytest.mark.asyncio
async def test_scenario_c_international_prefix_matches_existing(make_store):
    store = make_store([ExistingRecord(id="cus-1", phone="0901234567", name="C")])
    matrix = [["Họ tên", "SĐT"], ["C mới", "+84901234567"]]

    session, result = await run_import(store, matrix)

    row = session.rows[0]
    assert row.phone == "0901234567"
    assert row.duplicate_of == "cus-1"
    assert row.status == "update"
    assert (result.inserted, result.updated) == (0, 1)
    assert len(store.records) == 1


@pytest.mark.asyncio
async def test_scenario_d_invalid_phone_never_reaches_store(fake_store):
    matrix = [["Họ tên", "SĐT"], ["D", "12345"], ["E", "0911111111"]]

    session, result = await run_import(fake_store, matrix)

    bad = session.rows[0]
    assert [e.code for e in bad.errors] == [RowErrorCode.INVALID_PHONE_FORMAT]
    assert session.summary()["error"] == 1
    assert result.skipped == 0
    assert result.inserted == 1
    assert ("create", "12345") not in fake_store.calls


@pytest.mark.asyncio
async def test_importing_same_file_twice_only_updates(fake_store):
    matrix = [
        ["Họ tên", "SĐT", "Tags"],
        ["An", "0912000001", "VIP"],
        ["Bình", "0912000002", ""],
        ["Chi", "+84 912 000 003", "Sỉ, Lẻ"],
    ]

    _, first = await run_import(fake_store, matrix)
    _, second = await run_import(fake_store, matrix)

    assert (first.inserted, first.updated) == (3, 0)
    assert (second.inserted, second.updated) == (0, 3)
    assert len(fake_store.records) == 3


@pytest.mark.parametrize("raw", [
    "+84 912 345 678", "84912345678", "0912.345.678", "(091) 234-5678", "8412", "+84", "", "abc 84",
])
def test_phone_normalization_is_idempotent(raw):
    once = normalize_phone(raw)
    assert normalize_phone(once) == once


def test_merge_never_erases_existing_values():
    existing = ExistingRecord(
        id="cus-1", phone="0912345678", name="A", email="a@x.com",
        address="Q.1", birthday="1990-01-01", source="Facebook", note="old",
    )
    row = NormalizedRow(source_row_index=2, phone="0912345678")

    patch = build_patch(row, existing)

    for field in ("name", "email", "address", "birthday", "source", "note", "tags"):
        assert field not in patch
    assert "updated_at" in patch


def test_tag_union_has_no_duplicates():
    existing = ExistingRecord(id="cus-1", phone="0912345678", tags=("VIP", "Sỉ"))
    row = NormalizedRow(source_row_index=2, phone="0912345678", tag_list=("Sỉ", "Mới", "VIP"))

    patch = build_patch(row, existing)

    assert patch["tags"] == ["VIP", "Sỉ", "Mới"]
    assert len(patch["tags"]) == len(set(patch["tags"]))


def test_row_with_missing_name_and_bad_phone_reports_both():
    errors = validate_row(NormalizedRow(source_row_index=2, name="", phone="12345"))
    codes = {e.code for e in errors}
    assert codes == {RowErrorCode.MISSING_NAME, RowErrorCode.INVALID_PHONE_FORMAT}


def test_mapping_without_name_or_phone_blocks_validation():
    session = ImportSession("tenant-test")
    session.load_table(build_table([["Email", "Ghi chú"], ["a@x.com", "hi"]]))

    with pytest.raises(MappingError):
        session.confirm_mapping(ExistingRecordIndex())
    assert session.state == SessionState.HEADERS_LOADED


@pytest.mark.asyncio
async def test_remapping_after_import_is_rejected(fake_store):
    session, _ = await run_import(fake_store, [["Họ tên", "SĐT"], ["A", "0912345678"]])

    with pytest.raises(SessionStateError):
        session.override_mapping("SĐT", None)

    session.reset()
    assert session.state == SessionState.EMPTY
