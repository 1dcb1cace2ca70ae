"""
Activity log repository.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository
from app.models.activity_log import ActivityLog
from app.schemas.activity_log import ActivityLogCreate
from app.utils.ids import generate_prefixed_id, IDPrefix

logger = logging.getLogger("crm_import.db")


class ActivityLogRepository(BaseRepository[ActivityLog, ActivityLogCreate, ActivityLogCreate]):
    """Write side of the activity feed."""

    def __init__(self, session: AsyncSession):
        super().__init__(session=session, model=ActivityLog)

    async def log_activity(
        self,
        tenant_id: str,
        module: str,
        action: str,
        user_name: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        description: Optional[str] = None,
        new_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLog]:
        """
        Append an entry to the activity log.

        A failed write is logged and rolled back; it never fails the caller.

        Returns:
            ActivityLog: The stored entry, or None when the write failed
        """
        entry = ActivityLogCreate(
            tenant_id=tenant_id,
            user_name=user_name,
            module=module,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            description=description,
            new_data=new_data,
        )
        try:
            return await self.create(obj_in={**entry.model_dump(), "id": generate_prefixed_id(IDPrefix.ACTIVITY)})
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to write activity log ({module}/{action}): {str(e)}")
            return None
