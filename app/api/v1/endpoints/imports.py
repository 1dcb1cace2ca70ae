# app/api/v1/endpoints/imports.py
"""
Customer import endpoints.

The import is a multi-step workflow held in an in-process ImportSession:

1. POST /upload             parse the file, auto-map its headers
2. PUT  /{id}/mapping       optional manual corrections
3. POST /{id}/validate      normalize, validate and classify every row
4. POST /{id}/execute       persist valid rows, record the job
"""
import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status
from fastapi.responses import Response

from app.api.v1.dependencies import get_import_service, get_tenant_id, get_user_name
from app.core.config import settings
from app.core.exceptions import ParseError
from app.models.import_job import ImportStatus
from app.schemas.import_job import (
    FieldOption,
    ImportJobResponse,
    ImportResultResponse,
    MappingResponse,
    MappingUpdateRequest,
    PreviewResponse,
    SessionResponse,
    UploadResponse,
)
from app.services.imports.fields import field_options
from app.services.imports.reader import cell_text, read_table
from app.services.imports.service import ImportService
from app.services.imports.session import ImportSession, ImportSessionRegistry, get_session_registry
from app.services.imports.template import TEMPLATE_FILENAME, build_template_csv, build_template_workbook
from app.utils.pagination import PaginationParams, paginate_response

router = APIRouter()
logger = logging.getLogger("crm_import.api.imports")

SAMPLE_ROWS = 5
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _session_response(import_session: ImportSession) -> SessionResponse:
    mapping = import_session.mapping
    return SessionResponse(
        session_id=import_session.id,
        state=import_session.state.value,
        filename=import_session.filename,
        progress=import_session.progress,
        headers=list(mapping.headers) if mapping else [],
        mapping=mapping.as_dict() if mapping else None,
        warnings=mapping.warnings() if mapping else [],
        summary=import_session.summary() if import_session.rows else None,
        result=import_session.result.to_dict() if import_session.result else None,
    )


def _mapping_response(import_session: ImportSession) -> MappingResponse:
    mapping = import_session.mapping
    return MappingResponse(
        session_id=import_session.id,
        state=import_session.state.value,
        mapping=mapping.as_dict(),
        overridden=[h for h in mapping.headers if mapping.is_overridden(h)],
        warnings=mapping.warnings(),
    )


async def _get_import_session(
    session_id: str = Path(..., description="Import session ID"),
    tenant_id: str = Depends(get_tenant_id),
    registry: ImportSessionRegistry = Depends(get_session_registry),
) -> ImportSession:
    return registry.get(session_id, tenant_id=tenant_id)


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(..., description="CSV or XLSX file with customer rows"),
    tenant_id: str = Depends(get_tenant_id),
    registry: ImportSessionRegistry = Depends(get_session_registry),
):
    """
    Upload a spreadsheet and start an import session.

    The file is parsed in memory; the first non-empty row is the header row.
    The response carries the auto-detected mapping for the user to review.

    Raises:
        ParseError: Unsupported, oversized, unreadable or empty file
    """
    if not file or not file.filename:
        raise ParseError("No file provided")

    content = await file.read()
    table = read_table(file.filename, content)

    import_session = registry.create(tenant_id)
    mapping = import_session.load_table(table, file.filename)
    logger.info(
        f"Import session {import_session.id} opened for tenant {tenant_id}: "
        f"{file.filename}, {table.row_count} rows, {len(mapping.mapped_fields())} fields mapped"
    )

    return UploadResponse(
        session_id=import_session.id,
        filename=file.filename,
        headers=list(table.headers),
        mapping=mapping.as_dict(),
        warnings=mapping.warnings(),
        row_count=table.row_count,
        sample_rows=[[cell_text(v) for v in row] for row in table.rows[:SAMPLE_ROWS]],
        field_options=field_options(),
    )


@router.get("/fields", response_model=List[FieldOption])
async def list_fields():
    """Get the importable fields with their labels."""
    return field_options()


@router.get("/template")
async def download_template(
    format: str = Query("xlsx", pattern="^(xlsx|csv)$", description="Template format"),
):
    """Download an example file with the expected headers and sample rows."""
    if format == "csv":
        return Response(
            content=build_template_csv().encode("utf-8-sig"),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}.csv"'},
        )
    return Response(
        content=build_template_workbook(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}.xlsx"'},
    )


@router.get("/jobs", response_model=Dict[str, Any])
async def list_import_jobs(
    pagination: PaginationParams = Depends(),
    status_filter: Optional[ImportStatus] = Query(None, alias="status", description="Filter by job status"),
    service: ImportService = Depends(get_import_service),
):
    """List the tenant's executed imports, newest first."""
    jobs, total = await service.jobs.list_for_tenant(
        service.tenant_id,
        status=status_filter,
        skip=pagination.skip,
        limit=pagination.limit,
    )
    return paginate_response(
        items=[ImportJobResponse.model_validate(job) for job in jobs],
        total=total,
        pagination=pagination,
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_import_session(import_session: ImportSession = Depends(_get_import_session)):
    """Get state, progress, mapping, preview summary and result of a session."""
    return _session_response(import_session)


@router.put("/{session_id}/mapping", response_model=MappingResponse)
async def update_mapping(
    update: MappingUpdateRequest,
    import_session: ImportSession = Depends(_get_import_session),
):
    """
    Assign one column to a field, or ignore it with a null field.

    Any previous preview is discarded and must be validated again.
    """
    import_session.override_mapping(update.header, update.field)
    return _mapping_response(import_session)


@router.post("/{session_id}/validate", response_model=PreviewResponse)
async def validate_import(
    import_session: ImportSession = Depends(_get_import_session),
    service: ImportService = Depends(get_import_service),
):
    """
    Confirm the mapping and preview every row as new, update or error.

    Raises:
        MappingError: Neither a name nor a phone column is mapped
    """
    rows = await service.validate(import_session)
    limit = settings.IMPORT_PREVIEW_LIMIT
    return PreviewResponse(
        session_id=import_session.id,
        summary=import_session.summary(),
        rows=[row.to_dict() for row in rows[:limit]],
        truncated=len(rows) > limit,
        warnings=import_session.mapping.warnings(),
    )


@router.post("/{session_id}/execute", response_model=ImportResultResponse)
async def execute_import(
    import_session: ImportSession = Depends(_get_import_session),
    service: ImportService = Depends(get_import_service),
):
    """
    Persist the valid rows of a validated session.

    Rows run one at a time; a row the store rejects is counted as skipped
    and the batch continues.
    """
    result, job = await service.execute(import_session)
    return ImportResultResponse(
        session_id=import_session.id,
        job_id=job.id if job else None,
        **result.to_dict(),
    )


@router.post("/{session_id}/cancel", response_model=SessionResponse, status_code=status.HTTP_202_ACCEPTED)
async def cancel_import(import_session: ImportSession = Depends(_get_import_session)):
    """Ask a running import to stop after the current row."""
    import_session.cancel()
    return _session_response(import_session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_import(
    import_session: ImportSession = Depends(_get_import_session),
    registry: ImportSessionRegistry = Depends(get_session_registry),
    user_name: str = Depends(get_user_name),
):
    """Reset the session and forget it."""
    registry.discard(import_session.id)
    logger.info(f"Import session {import_session.id} discarded by {user_name}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
