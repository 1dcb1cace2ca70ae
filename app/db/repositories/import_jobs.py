"""
ImportJob repository for database operations related to customer import jobs.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository
from app.models.import_job import ImportJob, ImportStatus
from app.schemas.import_job import ImportJobCreate, ImportJobUpdate
from app.utils.datetime import utc_now
from app.utils.ids import generate_prefixed_id, IDPrefix

logger = logging.getLogger("crm_import.db")


class ImportJobRepository(BaseRepository[ImportJob, ImportJobCreate, ImportJobUpdate]):
    """ImportJob repository for database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session and ImportJob model."""
        super().__init__(session=session, model=ImportJob)

    async def create_job(
        self,
        tenant_id: str,
        session_id: str,
        filename: Optional[str],
        rows_total: int,
        mapping: Optional[Dict[str, Optional[str]]] = None,
        created_by: Optional[str] = None,
    ) -> ImportJob:
        """
        Record the start of an import run.

        Args:
            tenant_id: Tenant ID
            session_id: Import session running the job
            filename: Uploaded filename
            rows_total: Valid rows about to be persisted
            mapping: Header mapping in wire form
            created_by: Acting user

        Returns:
            ImportJob: The job in PROCESSING state
        """
        job_in = ImportJobCreate(
            tenant_id=tenant_id,
            session_id=session_id,
            filename=filename,
            mapping=mapping,
            rows_total=rows_total,
            started_at=utc_now(),
            created_by=created_by,
        )
        job = await self.create(obj_in={**job_in.model_dump(), "id": generate_prefixed_id(IDPrefix.IMPORT)})
        logger.info(f"Created import job {job.id} for session {session_id} ({rows_total} rows)")
        return job

    async def complete_job(
        self,
        job_id: str,
        status: ImportStatus,
        inserted: int = 0,
        updated: int = 0,
        skipped: int = 0,
        errors: Optional[List[Dict[str, Any]]] = None
    ) -> Optional[ImportJob]:
        """
        Mark an import job as finished with its final counters.

        Args:
            job_id: Import job ID
            status: Final status (SUCCESS, FAILED, CANCELLED)
            inserted: Customers created
            updated: Customers updated
            skipped: Rows the store rejected
            errors: Failed rows

        Returns:
            ImportJob: Updated import job or None
        """
        update_data = {
            "status": status,
            "rows_processed": inserted + updated + skipped,
            "inserted": inserted,
            "updated": updated,
            "skipped": skipped,
            "completed_at": utc_now(),
        }

        if errors is not None:
            update_data["errors"] = errors

        return await self.update(id=job_id, obj_in=update_data)

    async def fail_job(self, job_id: str, message: str) -> Optional[ImportJob]:
        """Mark an import job as failed after an unexpected error."""
        return await self.update(id=job_id, obj_in={
            "status": ImportStatus.FAILED,
            "errors": [{"row": 0, "message": message}],
            "completed_at": utc_now(),
        })

    async def list_for_tenant(
        self,
        tenant_id: str,
        status: Optional[ImportStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[ImportJob], int]:
        """
        Get import jobs of a tenant, newest first.

        Args:
            tenant_id: Tenant ID
            status: Optional status filter
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple[List[ImportJob], int]: (jobs, total_count)
        """
        query = select(ImportJob).where(ImportJob.tenant_id == tenant_id)
        count_query = select(func.count(ImportJob.id)).where(ImportJob.tenant_id == tenant_id)

        if status:
            query = query.where(ImportJob.status == status)
            count_query = count_query.where(ImportJob.status == status)

        total_result = await self.session.execute(count_query)
        total = total_result.scalar() or 0

        result = await self.session.execute(
            query.order_by(desc(ImportJob.created_at)).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total
