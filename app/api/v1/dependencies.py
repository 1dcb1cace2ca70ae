"""
Dependencies for API endpoints.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.db.session import get_db
from app.services.imports.service import ImportService

DEFAULT_USER_NAME = "system"


async def get_tenant_id(
    tenant_id: Optional[str] = Header(None, alias=settings.TENANT_HEADER),
) -> str:
    """
    Get the tenant the request acts on.

    Authentication happens upstream; the gateway forwards the tenant as a header.

    Raises:
        ValidationError: The header is present but blank
    """
    if tenant_id is None:
        return settings.DEFAULT_TENANT_ID
    tenant_id = tenant_id.strip()
    if not tenant_id:
        raise ValidationError(f"{settings.TENANT_HEADER} header must not be empty")
    return tenant_id


async def get_user_name(
    user_name: Optional[str] = Header(None, alias=settings.USER_NAME_HEADER),
) -> str:
    """Get the acting user's display name, used for created_by and the activity log."""
    return (user_name or "").strip() or DEFAULT_USER_NAME


async def get_import_service(
    db: AsyncSession = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    user_name: str = Depends(get_user_name),
) -> ImportService:
    """Get an import service bound to the request's session and tenant."""
    return ImportService(db, tenant_id, user_name)
