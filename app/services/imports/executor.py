# app/services/imports/executor.py
"""
Batch executor: persists validated rows one at a time.

Rows run strictly in order so that a record inserted for one row is visible
to the next row carrying the same phone. A store failure only skips its row.
"""
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from app.services.imports.duplicates import (
    ExistingRecord,
    ExistingRecordIndex,
    apply_patch,
    build_patch,
)
from app.services.imports.preview import ParsedRow

logger = logging.getLogger("crm_import.imports.executor")

ProgressCallback = Callable[[int], Union[None, Awaitable[None]]]
CancelCheck = Callable[[], bool]


class RecordStore(Protocol):
    """What the executor needs from the customer store."""

    async def fetch_existing(self, tenant_id: str) -> List[ExistingRecord]:
        ...

    async def create_record(self, fields: Dict[str, Any]) -> str:
        ...

    async def update_record(self, record_id: str, patch: Dict[str, Any]) -> None:
        ...


class RowAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RowOutcome:
    row_index: int
    action: RowAction
    record_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row_index,
            "action": self.action.value,
            "record_id": self.record_id,
            "error": self.error,
        }


@dataclass(frozen=True)
class ImportResult:
    """Final counts of one batch run."""
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    outcomes: Tuple[RowOutcome, ...] = field(default_factory=tuple)
    cancelled: bool = False

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.skipped

    def failures(self) -> List[RowOutcome]:
        return [o for o in self.outcomes if o.action == RowAction.SKIPPED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "total": self.total,
            "cancelled": self.cancelled,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class BatchProgress:
    """Running counters of a batch, updated before each progress report."""
    total: int = 0
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0

    def record(self, action: RowAction) -> None:
        self.processed += 1
        if action == RowAction.INSERTED:
            self.inserted += 1
        elif action == RowAction.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1


def progress_percent(processed: int, total: int) -> int:
    """Whole percent, halves rounded up."""
    if total <= 0:
        return 100
    return (200 * processed + total) // (2 * total)


class BatchExecutor:
    """
    Runs one import batch against a record store.

    The executor owns a private copy of the index for the length of the run;
    the caller's index is never modified.
    """

    def __init__(self, store: RecordStore, index: ExistingRecordIndex):
        self.store = store
        self.index = index.copy()
        self.progress = BatchProgress()
        self._last_milestone = 0

    async def run(
        self,
        parsed_rows: Sequence[ParsedRow],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> ImportResult:
        """
        Persist every valid row.

        Args:
            parsed_rows: Output of the validation pass; rows with errors are ignored
            on_progress: Called with a 0-100 percentage after each row (sync or async)
            should_cancel: Polled before each row; a true result stops the run

        Returns:
            ImportResult: Counts and per-row outcomes
        """
        rows = [row for row in parsed_rows if row.is_valid]
        total = len(rows)
        outcomes: List[RowOutcome] = []
        cancelled = False
        self.progress.total = total

        logger.info(f"Starting batch of {total} rows ({len(parsed_rows) - total} excluded by validation)")

        if not rows:
            await self._report(on_progress, 100)

        for processed, row in enumerate(rows, start=1):
            if should_cancel is not None and should_cancel():
                cancelled = True
                logger.info(f"Batch cancelled after {processed - 1}/{total} rows")
                break

            outcome = await self._persist(row)
            outcomes.append(outcome)
            self.progress.record(outcome.action)

            percent = progress_percent(processed, total)
            await self._report(on_progress, percent)
            self._log_milestone(percent, processed, total)

        result = ImportResult(
            inserted=sum(1 for o in outcomes if o.action == RowAction.INSERTED),
            updated=sum(1 for o in outcomes if o.action == RowAction.UPDATED),
            skipped=sum(1 for o in outcomes if o.action == RowAction.SKIPPED),
            outcomes=tuple(outcomes),
            cancelled=cancelled,
        )
        logger.info(
            f"Batch finished: {result.inserted} inserted, {result.updated} updated, "
            f"{result.skipped} skipped{' (cancelled)' if cancelled else ''}"
        )
        return result

    async def _persist(self, row: ParsedRow) -> RowOutcome:
        existing = self.index.lookup(row.phone)
        if existing is None and row.duplicate_of:
            # Matched at validation time but not in the supplied index
            existing = ExistingRecord(id=row.duplicate_of, phone=row.phone)

        try:
            if existing is not None:
                patch = build_patch(row, existing)
                await self.store.update_record(existing.id, patch)
                self.index.register(apply_patch(existing, patch))
                return RowOutcome(row.source_row_index, RowAction.UPDATED, record_id=existing.id)

            fields = row.to_record_fields()
            record_id = await self.store.create_record(fields)
            self.index.register(ExistingRecord.from_fields(record_id, fields))
            return RowOutcome(row.source_row_index, RowAction.INSERTED, record_id=record_id)

        except Exception as e:
            logger.warning(f"Row {row.source_row_index} skipped: {str(e)}")
            return RowOutcome(
                row.source_row_index,
                RowAction.SKIPPED,
                record_id=existing.id if existing is not None else None,
                error=str(e),
            )

    @staticmethod
    async def _report(on_progress: Optional[ProgressCallback], percent: int) -> None:
        if on_progress is None:
            return
        outcome = on_progress(percent)
        if inspect.isawaitable(outcome):
            await outcome

    def _log_milestone(self, percent: int, processed: int, total: int) -> None:
        milestone = (percent // 10) * 10
        if milestone > self._last_milestone:
            self._last_milestone = milestone
            logger.info(f"Import reached {milestone}% ({processed:,}/{total:,} rows)")
