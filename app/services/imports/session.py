# app/services/imports/session.py
"""
Import session: the multi-step workflow from uploaded file to ImportResult.

    empty -> headers_loaded -> mapped -> validated -> importing -> completed

reset() returns to empty from any state. Changing the mapping is refused once
the batch has started.
"""
import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from app.core.exceptions import NotFoundError, SessionStateError
from app.services.imports.duplicates import ExistingRecordIndex
from app.services.imports.executor import BatchExecutor, BatchProgress, ImportResult, ProgressCallback, RecordStore
from app.services.imports.mapping import FieldInput, HeaderMapping, auto_map, override, require_identifying_fields
from app.services.imports.preview import ParsedRow, parse_rows, summarize
from app.services.imports.reader import RawTable
from app.utils.datetime import utc_now
from app.utils.ids import IDPrefix, generate_prefixed_id

logger = logging.getLogger("crm_import.imports.session")


class SessionState(str, Enum):
    EMPTY = "empty"
    HEADERS_LOADED = "headers_loaded"
    MAPPED = "mapped"
    VALIDATED = "validated"
    IMPORTING = "importing"
    COMPLETED = "completed"


EDITABLE_STATES = (SessionState.HEADERS_LOADED, SessionState.MAPPED, SessionState.VALIDATED)


class ImportSession:
    """State holder for one import. Owns the table, mapping and parsed rows."""

    def __init__(self, tenant_id: str, session_id: Optional[str] = None):
        self.id = session_id or generate_prefixed_id(IDPrefix.SESSION)
        self.tenant_id = tenant_id
        self._clear()

    def _clear(self) -> None:
        self.state = SessionState.EMPTY
        self.filename: Optional[str] = None
        self.table: Optional[RawTable] = None
        self.mapping: Optional[HeaderMapping] = None
        self.rows: List[ParsedRow] = []
        self.index: Optional[ExistingRecordIndex] = None
        self.progress = 0
        self.batch: Optional[BatchProgress] = None
        self.result: Optional[ImportResult] = None
        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None
        self._run: Optional[asyncio.Event] = None

    def _require(self, action: str, *states: SessionState) -> None:
        if self.state not in states:
            raise SessionStateError(
                f"Cannot {action} while session is {self.state.value}",
                details={
                    "session_id": self.id,
                    "state": self.state.value,
                    "allowed": [s.value for s in states],
                },
            )

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"Session {self.id}: {self.state.value} -> {state.value}")
        self.state = state

    def load_table(self, table: RawTable, filename: Optional[str] = None) -> HeaderMapping:
        """Attach a parsed file and auto-map its headers."""
        self._require("load a file", SessionState.EMPTY, *EDITABLE_STATES, SessionState.COMPLETED)
        self._clear()
        self.table = table
        self.filename = filename
        self.mapping = auto_map(table.headers)
        self._transition(SessionState.HEADERS_LOADED)
        return self.mapping

    def override_mapping(self, header: str, field: FieldInput) -> HeaderMapping:
        """Reassign one column. Any existing preview is discarded."""
        self._require("change the mapping", *EDITABLE_STATES)
        self.mapping = override(self.mapping, header, field)
        self.rows = []
        self.index = None
        self._transition(SessionState.HEADERS_LOADED)
        return self.mapping

    def confirm_mapping(self, index: ExistingRecordIndex) -> List[ParsedRow]:
        """
        Accept the current mapping and run the validation pass.

        Args:
            index: Existing records of the tenant, keyed by phone

        Returns:
            List[ParsedRow]: Preview rows

        Raises:
            MappingError: Neither a name nor a phone column is mapped
            SessionStateError: Called outside the editable states
        """
        self._require("confirm the mapping", *EDITABLE_STATES)
        require_identifying_fields(self.mapping)
        self._transition(SessionState.MAPPED)

        self.index = index
        self.rows = parse_rows(self.table, self.mapping, index)
        self._transition(SessionState.VALIDATED)
        return self.rows

    def summary(self) -> Dict[str, int]:
        return summarize(self.rows)

    def valid_rows(self) -> List[ParsedRow]:
        return [row for row in self.rows if row.is_valid]

    def ensure_executable(self) -> None:
        self._require("start the import", SessionState.VALIDATED)

    def begin_import(self) -> asyncio.Event:
        """
        Claim the session for one run.

        Synchronous, so two callers racing on the same session cannot both
        pass the state check. The returned token is set to stop the run.

        Raises:
            SessionStateError: The session is not validated
        """
        self.ensure_executable()
        self._transition(SessionState.IMPORTING)
        run = asyncio.Event()
        self._run = run
        self.progress = 0
        self.batch = None
        self.started_at = utc_now()
        return run

    def abandon_import(self, run: asyncio.Event) -> None:
        """Give back a claim whose run never started."""
        if self._run is run:
            self._run = None
            self._transition(SessionState.VALIDATED)

    async def execute(
        self,
        store: RecordStore,
        index: Optional[ExistingRecordIndex] = None,
        on_progress: Optional[ProgressCallback] = None,
        run: Optional[asyncio.Event] = None,
    ) -> ImportResult:
        """
        Persist the validated rows.

        Args:
            store: Record store the rows are written to
            index: Fresh existing-record index; defaults to the one used for the preview
            on_progress: Extra progress listener, called after each row
            run: Token from begin_import(); the session is claimed here when omitted

        Returns:
            ImportResult: Final counts
        """
        if run is None:
            run = self.begin_import()
        elif self._run is not run:
            raise SessionStateError(
                "Import run is no longer attached to the session",
                details={"session_id": self.id, "state": self.state.value},
            )

        async def report(percent: int) -> None:
            if self._run is run:
                self.progress = percent
            if on_progress is not None:
                await BatchExecutor._report(on_progress, percent)

        if index is None:
            index = self.index if self.index is not None else ExistingRecordIndex()
        executor = BatchExecutor(store, index)
        self.batch = executor.progress
        try:
            result = await executor.run(self.rows, on_progress=report, should_cancel=run.is_set)
        except Exception:
            logger.exception(f"Import session {self.id} failed")
            self.abandon_import(run)
            raise

        # A reset during the run already detached it from the session
        if self._run is run:
            self._run = None
            self.completed_at = utc_now()
            self.result = result
            self._transition(SessionState.COMPLETED)
        return result

    def cancel(self) -> None:
        """Stop the running batch at the next row boundary."""
        self._require("cancel", SessionState.IMPORTING)
        self._run.set()
        logger.info(f"Cancellation requested for import session {self.id}")

    def reset(self) -> None:
        """Back to empty from any state; a running batch is asked to stop."""
        if self._run is not None:
            self._run.set()
            logger.info(f"Import session {self.id} reset during import")
        self._clear()

    @property
    def is_running(self) -> bool:
        return self._run is not None


class ImportSessionRegistry:
    """In-process registry of open import sessions."""

    def __init__(self):
        self._sessions: Dict[str, ImportSession] = {}

    def create(self, tenant_id: str) -> ImportSession:
        session = ImportSession(tenant_id)
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str, tenant_id: Optional[str] = None) -> ImportSession:
        session = self._sessions.get(session_id)
        if session is None or (tenant_id is not None and session.tenant_id != tenant_id):
            raise NotFoundError(f"Import session {session_id} not found")
        return session

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.reset()

    def __len__(self) -> int:
        return len(self._sessions)


registry = ImportSessionRegistry()


def get_session_registry() -> ImportSessionRegistry:
    """FastAPI dependency for the process-wide session registry."""
    return registry
