from datetime import datetime, timedelta, timezone

import pytest

from app.services.imports.events import ImportEventType, create_completion_event, create_progress_event
from app.services.imports.executor import ImportResult, RowAction, RowOutcome

STARTED = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_progress_event():
    event = create_progress_event("imps-1", processed=1, total=8, inserted=1)

    assert event["type"] == ImportEventType.PROGRESS
    assert event["percent"] == 13
    assert event["total_rows"] == 8
    assert event["updated"] == 0


@pytest.mark.parametrize("result, final_status", [
    (ImportResult(inserted=2), "success"),
    (ImportResult(inserted=1, skipped=1), "partial_success"),
    (ImportResult(skipped=2), "failed"),
    (ImportResult(inserted=1, cancelled=True), "cancelled"),
    (ImportResult(), "success"),
])
def test_completion_status(result, final_status):
    event = create_completion_event("imps-1", result, STARTED, STARTED)
    assert event["final_status"] == final_status


def test_completion_event_lists_failed_rows():
    result = ImportResult(
        inserted=1,
        skipped=1,
        outcomes=(
            RowOutcome(2, RowAction.INSERTED, "rec-1"),
            RowOutcome(3, RowAction.SKIPPED, error="store timed out"),
        ),
    )

    event = create_completion_event("imps-1", result, STARTED, STARTED + timedelta(seconds=1.5))

    assert event["type"] == ImportEventType.COMPLETED
    assert event["errors"] == [{"row": 3, "message": "store timed out"}]
    assert event["total_processing_time"] == 1.5
    assert event["total_rows"] == 2


def test_cancelled_event_type_and_missing_start():
    event = create_completion_event("imps-1", ImportResult(cancelled=True), None, STARTED)

    assert event["type"] == ImportEventType.CANCELLED
    assert event["total_processing_time"] == 0
    assert event["started_at"] == STARTED.isoformat()
