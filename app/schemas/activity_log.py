"""
Pydantic schemas for activity log entries.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ActivityLogCreate(BaseModel):
    """Schema for writing an activity log entry."""
    tenant_id: str = Field(..., description="Owning tenant")
    user_name: Optional[str] = Field(None, description="Acting user")
    module: str = Field(..., description="Application module, e.g. sales")
    action: str = Field(..., description="Action performed, e.g. import")
    entity_type: Optional[str] = Field(None, description="Kind of entity touched")
    entity_id: Optional[str] = Field(None, description="Entity identifier")
    entity_name: Optional[str] = Field(None, description="Human readable entity name")
    description: Optional[str] = Field(None, description="Summary line")
    new_data: Optional[Dict[str, Any]] = Field(None, description="Payload describing the change")
