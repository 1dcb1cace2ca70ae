# app/services/imports/service.py
"""
Import Service - database-bound steps of a customer import.

Wraps an ImportSession with the tenant's customer repository: seeds the
existing-record index, runs the batch, and records the ImportJob audit row
and the activity log entry.
"""
import logging
from typing import Callable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.activity_logs import ActivityLogRepository
from app.db.repositories.customers import CustomerRepository, TenantCustomerStore
from app.db.repositories.import_jobs import ImportJobRepository
from app.models.import_job import ImportJob, ImportStatus
from app.services.imports.duplicates import ExistingRecordIndex
from app.services.imports.events import ImportProgressV1, create_completion_event, create_progress_event
from app.services.imports.executor import ImportResult
from app.services.imports.preview import ParsedRow
from app.services.imports.session import ImportSession
from app.utils.datetime import utc_now

logger = logging.getLogger("crm_import.imports.service")

ACTIVITY_MODULE = "sales"
ACTIVITY_ENTITY_ID = "customer-import"
ACTIVITY_ENTITY_NAME = "Import khách hàng"

ProgressListener = Callable[[ImportProgressV1], None]


def describe_result(result: ImportResult) -> str:
    """Activity feed line, e.g. "Import khách hàng: 3 mới, 1 cập nhật, 2 bỏ qua"."""
    description = f"{ACTIVITY_ENTITY_NAME}: {result.inserted} mới, {result.updated} cập nhật"
    if result.skipped > 0:
        description += f", {result.skipped} bỏ qua"
    return description


class ImportService:
    """
    One instance per request. Uses the request's database session for the
    customer store, the job audit record and the activity log.
    """

    def __init__(self, session: AsyncSession, tenant_id: str, user_name: Optional[str] = None):
        """
        Initialize import service for a tenant.

        Args:
            session: Database session
            tenant_id: Tenant the import writes to
            user_name: Acting user, stored as created_by
        """
        self.session = session
        self.tenant_id = tenant_id
        self.user_name = user_name
        self.customers = CustomerRepository(session)
        self.jobs = ImportJobRepository(session)
        self.activity = ActivityLogRepository(session)
        self.store = TenantCustomerStore(self.customers, tenant_id, created_by=user_name)

    async def load_existing_index(self) -> ExistingRecordIndex:
        records = await self.store.fetch_existing(self.tenant_id)
        logger.debug(f"Loaded {len(records)} existing customers for tenant {self.tenant_id}")
        return ExistingRecordIndex(records)

    async def validate(self, import_session: ImportSession) -> List[ParsedRow]:
        """Run the validation pass against the tenant's current customers."""
        index = await self.load_existing_index()
        return import_session.confirm_mapping(index)

    async def execute(
        self,
        import_session: ImportSession,
        on_event: Optional[ProgressListener] = None,
    ) -> Tuple[ImportResult, ImportJob]:
        """
        Persist a validated session and record the run.

        The index is rebuilt from the store so customers created since the
        preview are merged instead of colliding on their phone.

        Args:
            import_session: Session in validated state
            on_event: Receives an ImportProgressV1 payload after each row

        Returns:
            Tuple[ImportResult, ImportJob]: Batch result and its audit record

        Raises:
            SessionStateError: The session is not validated
        """
        # Claimed before the first await so a concurrent call is refused without a job row
        run = import_session.begin_import()
        try:
            index = await self.load_existing_index()
            total = len(import_session.valid_rows())
            job = await self.jobs.create_job(
                tenant_id=self.tenant_id,
                session_id=import_session.id,
                filename=import_session.filename,
                rows_total=total,
                mapping=import_session.mapping.as_dict() if import_session.mapping else None,
                created_by=self.user_name,
            )
        except Exception:
            import_session.abandon_import(run)
            raise
        job_id = job.id

        def on_progress(percent: int) -> None:
            batch = import_session.batch
            if batch is None:
                return
            event = create_progress_event(
                import_session.id,
                batch.processed,
                batch.total,
                inserted=batch.inserted,
                updated=batch.updated,
                skipped=batch.skipped,
            )
            logger.debug(f"Progress: {event}")
            if on_event is not None:
                on_event(event)

        try:
            result = await import_session.execute(self.store, index=index, on_progress=on_progress, run=run)
        except Exception as e:
            logger.error(f"Import session {import_session.id} failed: {str(e)}")
            await self.session.rollback()
            await self.jobs.fail_job(job_id, str(e))
            raise

        status = ImportStatus.CANCELLED if result.cancelled else ImportStatus.SUCCESS
        job = await self.jobs.complete_job(
            job_id,
            status=status,
            inserted=result.inserted,
            updated=result.updated,
            skipped=result.skipped,
            errors=[o.to_dict() for o in result.failures()],
        )

        event = create_completion_event(import_session.id, result, import_session.started_at, utc_now())
        logger.info(
            f"Import job {job_id} {event['final_status']}: {result.inserted} inserted, "
            f"{result.updated} updated, {result.skipped} skipped in {event['total_processing_time']}s"
        )

        if result.inserted > 0 or result.updated > 0:
            await self.activity.log_activity(
                tenant_id=self.tenant_id,
                user_name=self.user_name,
                module=ACTIVITY_MODULE,
                action="import",
                entity_type="customer",
                entity_id=ACTIVITY_ENTITY_ID,
                entity_name=ACTIVITY_ENTITY_NAME,
                description=describe_result(result),
                new_data={
                    "job_id": job_id,
                    "inserted": result.inserted,
                    "updated": result.updated,
                    "skipped": result.skipped,
                },
            )

        return result, job
