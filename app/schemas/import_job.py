"""
Pydantic schemas for customer import API operations.
"""
from typing import List, Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.models.import_job import ImportStatus


class ImportJobCreate(BaseModel):
    """Schema for creating an import job audit record."""
    tenant_id: str = Field(..., description="Owning tenant")
    session_id: Optional[str] = Field(None, description="Import session that ran the job")
    filename: Optional[str] = Field(None, description="Original filename")
    mapping: Optional[Dict[str, Optional[str]]] = Field(None, description="Header -> field mapping used")
    rows_total: int = Field(0, description="Valid rows sent to the store")
    status: ImportStatus = Field(ImportStatus.PROCESSING, description="Import job status")
    started_at: Optional[datetime] = Field(None, description="Processing start time")
    created_by: Optional[str] = Field(None, description="User who ran the import")

    @field_validator("rows_total")
    def validate_rows(cls, v):
        """Validate row counts."""
        if v < 0:
            raise ValueError("Row count cannot be negative")
        return v


class ImportJobUpdate(BaseModel):
    """Schema for updating an import job."""
    status: Optional[ImportStatus] = Field(None, description="Import job status")
    rows_processed: Optional[int] = Field(None, description="Number of rows processed")
    inserted: Optional[int] = Field(None, description="Customers created")
    updated: Optional[int] = Field(None, description="Customers updated")
    skipped: Optional[int] = Field(None, description="Rows the store rejected")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Failed rows")
    completed_at: Optional[datetime] = Field(None, description="Processing completion time")


class ImportJobResponse(BaseModel):
    """Schema for import job response."""
    id: str = Field(..., description="Import job ID")
    session_id: Optional[str] = Field(None, description="Import session ID")
    filename: Optional[str] = Field(None, description="Original filename")
    status: ImportStatus = Field(..., description="Import job status")
    rows_total: int = Field(..., description="Valid rows sent to the store")
    rows_processed: int = Field(..., description="Rows processed")
    inserted: int = Field(0, description="Customers created")
    updated: int = Field(0, description="Customers updated")
    skipped: int = Field(0, description="Rows the store rejected")
    errors: Optional[List[Dict[str, Any]]] = Field(default=[], description="Failed rows")
    mapping: Optional[Dict[str, Optional[str]]] = Field(None, description="Mapping used")
    started_at: Optional[datetime] = Field(None, description="Processing start time")
    completed_at: Optional[datetime] = Field(None, description="Processing completion time")
    created_by: Optional[str] = Field(None, description="User who ran the import")
    created_at: datetime = Field(..., description="Creation timestamp")

    # Computed fields
    progress_percentage: float = Field(0, description="Import progress percentage")
    error_count: int = Field(0, description="Total number of failed rows")

    class Config:
        """Pydantic config."""
        from_attributes = True


class FieldOption(BaseModel):
    """One choice of the column mapping dropdown."""
    value: str = Field(..., description="Canonical field, empty string to ignore the column")
    label: str = Field(..., description="Display label")


class UploadResponse(BaseModel):
    """Response to a file upload: the auto-detected mapping."""
    session_id: str = Field(..., description="Import session ID")
    filename: str = Field(..., description="Uploaded filename")
    headers: List[str] = Field(..., description="Column headers in file order")
    mapping: Dict[str, Optional[str]] = Field(..., description="Header -> canonical field (null = ignored)")
    warnings: List[str] = Field(default=[], description="Mapping warnings")
    row_count: int = Field(..., description="Number of data rows")
    sample_rows: List[List[str]] = Field(default=[], description="First data rows as text")
    field_options: List[FieldOption] = Field(..., description="Choices for manual mapping")


class MappingUpdateRequest(BaseModel):
    """Reassign one column."""
    header: str = Field(..., description="Column header as returned by upload")
    field: Optional[str] = Field(None, description="Canonical field, null or empty to ignore")


class MappingResponse(BaseModel):
    """Current mapping of a session."""
    session_id: str
    state: str
    mapping: Dict[str, Optional[str]]
    overridden: List[str] = Field(default=[], description="Headers set manually")
    warnings: List[str] = Field(default=[])


class RowErrorSchema(BaseModel):
    code: str
    field: str
    message: str


class PreviewRow(BaseModel):
    """One row of the validation preview."""
    row: int = Field(..., description="Spreadsheet row number (header = 1)")
    status: str = Field(..., description="new, update or error")
    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    birthday: str = ""
    source: str = ""
    note: str = ""
    tags: List[str] = []
    errors: List[RowErrorSchema] = []
    duplicate_of: Optional[str] = Field(None, description="Existing customer this row updates")
    duplicate_of_row: Optional[int] = Field(None, description="Earlier row in the file with the same phone")


class ImportSummary(BaseModel):
    new: int = 0
    update: int = 0
    error: int = 0
    total: int = 0


class PreviewResponse(BaseModel):
    """Validation pass result."""
    session_id: str
    summary: ImportSummary
    rows: List[PreviewRow]
    truncated: bool = Field(False, description="Whether rows beyond the preview limit were left out")
    warnings: List[str] = Field(default=[])


class RowOutcomeSchema(BaseModel):
    row: int
    action: str
    record_id: Optional[str] = None
    error: Optional[str] = None


class ImportResultResponse(BaseModel):
    """Final counts of an executed import."""
    session_id: str
    job_id: Optional[str] = Field(None, description="Audit record of the run")
    inserted: int
    updated: int
    skipped: int
    total: int
    cancelled: bool = False
    outcomes: List[RowOutcomeSchema] = []


class SessionResponse(BaseModel):
    """State of an import session."""
    session_id: str
    state: str
    filename: Optional[str] = None
    progress: int = Field(0, description="Import progress (0-100)")
    headers: List[str] = []
    mapping: Optional[Dict[str, Optional[str]]] = None
    warnings: List[str] = []
    summary: Optional[ImportSummary] = None
    result: Optional[Dict[str, Any]] = None
