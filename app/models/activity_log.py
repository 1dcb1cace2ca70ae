"""
Database model for the user activity log.
"""
from sqlalchemy import Column, String, JSON, Text

from app.models.base import Base


class ActivityLog(Base):
    """One line of the tenant's activity feed."""

    tenant_id = Column(String, nullable=False, index=True)
    user_name = Column(String, nullable=True)
    module = Column(String, nullable=False)
    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=True)
    entity_id = Column(String, nullable=True)
    entity_name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    new_data = Column(JSON, nullable=True)
