import io

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook

CSV_CONTENT = (
    "Họ tên,SĐT,Email,Tags\n"
    "Nguyễn Văn A,0912345678,a@x.com,VIP\n"
    "Trần B,+84 987 654 321,,\n"
    "Lỗi,12345,,\n"
    "Nguyễn Văn A,0912345678,,Sỉ\n"
).encode("utf-8")


async def upload(client: AsyncClient, content: bytes = CSV_CONTENT, filename: str = "khach.csv"):
    return await client.post("/api/v1/imports/upload", files={"file": (filename, content, "text/csv")})


@pytest.mark.asyncio
async def test_upload_returns_auto_mapping(async_client: AsyncClient):
    response = await upload(async_client)

    assert response.status_code == 201
    data = response.json()
    assert data["session_id"].startswith("imps-")
    assert data["headers"] == ["Họ tên", "SĐT", "Email", "Tags"]
    assert data["mapping"] == {"Họ tên": "name", "SĐT": "phone", "Email": "email", "Tags": "tags"}
    assert data["row_count"] == 4
    assert data["sample_rows"][0] == ["Nguyễn Văn A", "0912345678", "a@x.com", "VIP"]
    assert data["field_options"][0]["value"] == ""


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_file(async_client: AsyncClient):
    response = await upload(async_client, b"%PDF-1.4", "khach.pdf")

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["code"] == "PARSE_ERROR"


@pytest.mark.asyncio
async def test_upload_rejects_header_only_file(async_client: AsyncClient):
    response = await upload(async_client, "Họ tên,SĐT\n".encode("utf-8"))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_full_import_flow(async_client: AsyncClient):
    session_id = (await upload(async_client)).json()["session_id"]

    preview = await async_client.post(f"/api/v1/imports/{session_id}/validate")
    assert preview.status_code == 200
    body = preview.json()
    assert body["summary"] == {"new": 2, "update": 1, "error": 1, "total": 4}
    assert [row["status"] for row in body["rows"]] == ["new", "new", "error", "update"]
    assert body["rows"][1]["phone"] == "0987654321"
    assert body["rows"][2]["errors"][0]["code"] == "InvalidPhoneFormat"
    assert body["rows"][3]["duplicate_of_row"] == 2

    executed = await async_client.post(f"/api/v1/imports/{session_id}/execute")
    assert executed.status_code == 200
    result = executed.json()
    assert (result["inserted"], result["updated"], result["skipped"]) == (2, 1, 0)
    assert result["job_id"].startswith("import-")

    state = await async_client.get(f"/api/v1/imports/{session_id}")
    assert state.json()["state"] == "completed"
    assert state.json()["progress"] == 100

    customers = (await async_client.get("/api/v1/customers/", params={"q": "nguyễn"})).json()
    assert customers["page_info"]["total_items"] == 1
    customer = customers["items"][0]
    assert customer["tags"] == ["VIP", "Sỉ"]
    assert customer["email"] == "a@x.com"
    assert customer["created_by"] == "tester"

    jobs = (await async_client.get("/api/v1/imports/jobs")).json()
    assert jobs["page_info"]["total_items"] == 1
    job = jobs["items"][0]
    assert job["status"] == "success"
    assert job["rows_total"] == 3
    assert job["rows_processed"] == 3
    assert job["filename"] == "khach.csv"


@pytest.mark.asyncio
async def test_second_import_of_same_file_only_updates(async_client: AsyncClient):
    for expected in ((2, 1), (0, 3)):
        session_id = (await upload(async_client)).json()["session_id"]
        await async_client.post(f"/api/v1/imports/{session_id}/validate")
        result = (await async_client.post(f"/api/v1/imports/{session_id}/execute")).json()
        assert (result["inserted"], result["updated"]) == expected

    customers = (await async_client.get("/api/v1/customers/")).json()
    assert customers["page_info"]["total_items"] == 2


@pytest.mark.asyncio
async def test_mapping_override_and_gate(async_client: AsyncClient):
    session_id = (await upload(async_client)).json()["session_id"]

    changed = await async_client.put(
        f"/api/v1/imports/{session_id}/mapping", json={"header": "Tags", "field": "source"},
    )
    assert changed.status_code == 200
    assert changed.json()["mapping"]["Tags"] == "source"
    assert changed.json()["overridden"] == ["Tags"]

    for header in ("Họ tên", "SĐT"):
        await async_client.put(f"/api/v1/imports/{session_id}/mapping", json={"header": header, "field": None})

    gated = await async_client.post(f"/api/v1/imports/{session_id}/validate")
    assert gated.status_code == 422
    assert gated.json()["code"] == "MAPPING_ERROR"


@pytest.mark.asyncio
async def test_mapping_unknown_field_is_rejected(async_client: AsyncClient):
    session_id = (await upload(async_client)).json()["session_id"]

    response = await async_client.put(
        f"/api/v1/imports/{session_id}/mapping", json={"header": "Tags", "field": "salary"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_execute_before_validate_conflicts(async_client: AsyncClient):
    session_id = (await upload(async_client)).json()["session_id"]

    response = await async_client.post(f"/api/v1/imports/{session_id}/execute")

    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_SESSION_STATE"
    jobs = (await async_client.get("/api/v1/imports/jobs")).json()
    assert jobs["page_info"]["total_items"] == 0


@pytest.mark.asyncio
async def test_cancel_when_not_running_conflicts(async_client: AsyncClient):
    session_id = (await upload(async_client)).json()["session_id"]
    response = await async_client.post(f"/api/v1/imports/{session_id}/cancel")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_sessions_are_tenant_scoped(async_client: AsyncClient):
    session_id = (await upload(async_client)).json()["session_id"]

    response = await async_client.get(f"/api/v1/imports/{session_id}", headers={"X-Tenant-ID": "other"})

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_blank_tenant_header_is_rejected(async_client: AsyncClient):
    response = await async_client.get("/api/v1/imports/jobs", headers={"X-Tenant-ID": "  "})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_discard_session(async_client: AsyncClient, registry):
    session_id = (await upload(async_client)).json()["session_id"]

    response = await async_client.delete(f"/api/v1/imports/{session_id}")

    assert response.status_code == 204
    assert len(registry) == 0
    assert (await async_client.get(f"/api/v1/imports/{session_id}")).status_code == 404


@pytest.mark.asyncio
async def test_fields_endpoint(async_client: AsyncClient):
    response = await async_client.get("/api/v1/imports/fields")
    assert response.status_code == 200
    assert {"value": "phone", "label": "SĐT"} in response.json()


@pytest.mark.asyncio
async def test_template_download(async_client: AsyncClient):
    xlsx = await async_client.get("/api/v1/imports/template")
    assert xlsx.status_code == 200
    assert 'filename="mau-import-khach-hang.xlsx"' in xlsx.headers["content-disposition"]
    sheet = load_workbook(io.BytesIO(xlsx.content)).active
    assert sheet["A1"].value == "Họ tên"

    csv_response = await async_client.get("/api/v1/imports/template", params={"format": "csv"})
    assert csv_response.content.startswith(b"\xef\xbb\xbf")
    assert csv_response.content.decode("utf-8-sig").startswith("Họ tên,SĐT")

    bad = await async_client.get("/api/v1/imports/template", params={"format": "pdf"})
    assert bad.status_code == 422
