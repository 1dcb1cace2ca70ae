# app/services/imports/events.py
"""
Versioned import event payloads.

Progress events are emitted after each persisted row and the completion event
once the batch has finished; both are plain dicts so they can be logged or
returned by the API as-is.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, TypedDict

from app.services.imports.executor import ImportResult, progress_percent

__all__ = [
    "ImportEventType",
    "ImportRowErrorV1",
    "ImportProgressV1",
    "ImportCompletedV1",
    "create_progress_event",
    "create_completion_event",
]


class ImportEventType(str, Enum):
    PROGRESS = "progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ImportRowErrorV1(TypedDict):
    row: int                           # Spreadsheet row number (header = 1)
    message: str                       # Store error text


class ImportProgressV1(TypedDict):
    """Incremental progress of a running batch."""
    type: ImportEventType              # Always "progress"
    session_id: str

    processed: int                     # Rows handled so far (cumulative)
    total_rows: int                    # Valid rows in the batch
    percent: int                       # 0-100, halves rounded up

    inserted: int
    updated: int
    skipped: int


class ImportCompletedV1(TypedDict):
    """
    Final state of a batch.

    type is "cancelled" when the batch stopped before its last row.
    """
    type: ImportEventType
    session_id: str

    total_rows: int                    # Rows that reached the store
    inserted: int
    updated: int
    skipped: int
    final_status: str                  # "success", "partial_success", "failed" or "cancelled"

    errors: List[ImportRowErrorV1]     # Skipped rows with their store error
    total_processing_time: float       # Seconds from start to completion

    started_at: str                    # ISO timestamps
    completed_at: str


def create_progress_event(
    session_id: str,
    processed: int,
    total: int,
    inserted: int = 0,
    updated: int = 0,
    skipped: int = 0,
) -> ImportProgressV1:
    """
    Create a progress event.

    Args:
        session_id: Import session identifier
        processed: Rows processed so far
        total: Rows in the batch
        inserted: Rows inserted so far
        updated: Rows updated so far
        skipped: Rows skipped so far

    Returns:
        ImportProgressV1: Progress payload
    """
    return ImportProgressV1(
        type=ImportEventType.PROGRESS,
        session_id=session_id,
        processed=processed,
        total_rows=total,
        percent=min(100, progress_percent(processed, total)),
        inserted=inserted,
        updated=updated,
        skipped=skipped,
    )


def _final_status(result: ImportResult) -> str:
    if result.cancelled:
        return "cancelled"
    if result.skipped == 0:
        return "success"
    if result.inserted or result.updated:
        return "partial_success"
    return "failed"


def create_completion_event(
    session_id: str,
    result: ImportResult,
    started_at: Optional[datetime],
    completed_at: datetime,
) -> ImportCompletedV1:
    """
    Create the completion event for a finished batch.

    Args:
        session_id: Import session identifier
        result: Batch result
        started_at: Batch start (falls back to completed_at)
        completed_at: Batch end

    Returns:
        ImportCompletedV1: Completion payload
    """
    started_at = started_at or completed_at
    return ImportCompletedV1(
        type=ImportEventType.CANCELLED if result.cancelled else ImportEventType.COMPLETED,
        session_id=session_id,
        total_rows=result.total,
        inserted=result.inserted,
        updated=result.updated,
        skipped=result.skipped,
        final_status=_final_status(result),
        errors=[ImportRowErrorV1(row=o.row_index, message=o.error or "") for o in result.failures()],
        total_processing_time=round((completed_at - started_at).total_seconds(), 3),
        started_at=started_at.isoformat(),
        completed_at=completed_at.isoformat(),
    )
