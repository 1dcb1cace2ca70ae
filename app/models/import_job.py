"""
Database model for import job auditing.
"""
from enum import Enum

from sqlalchemy import Column, String, DateTime, JSON, Integer, Enum as SQLEnum

from app.models.base import Base


class ImportStatus(str, Enum):
    """Import job status enum."""
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ImportJob(Base):
    """Audit record of one executed customer import."""

    tenant_id = Column(String, nullable=False, index=True)
    session_id = Column(String, nullable=True, index=True)
    status = Column(SQLEnum(ImportStatus), nullable=False, default=ImportStatus.PROCESSING, index=True)

    filename = Column(String, nullable=True)
    mapping = Column(JSON, nullable=True)  # header -> canonical field used for this run

    # Progress tracking
    rows_total = Column(Integer, default=0, nullable=False)
    rows_processed = Column(Integer, default=0, nullable=False)

    # Outcome counters
    inserted = Column(Integer, default=0, nullable=False)
    updated = Column(Integer, default=0, nullable=False)
    skipped = Column(Integer, default=0, nullable=False)

    # Failed rows - JSON list of {row, message}
    errors = Column(JSON, nullable=True, default=list)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String, nullable=True)

    @property
    def progress_percentage(self) -> float:
        """Calculate the import progress percentage."""
        if self.rows_total == 0:
            return 0
        return round((self.rows_processed / self.rows_total) * 100, 2)

    @property
    def error_count(self) -> int:
        return len(self.errors) if self.errors else 0
