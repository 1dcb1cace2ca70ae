"""
Database model for tenant customers.
"""
from sqlalchemy import Column, String, JSON, Text, UniqueConstraint

from app.models.base import Base
from app.utils.phone import format_phone_display


class Customer(Base):
    """Model for customers, created by hand or by bulk import."""

    tenant_id = Column(String, nullable=False, index=True)

    # Contact information
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True, index=True)  # Normalized local form, e.g. 0912345678
    email = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    birthday = Column(String, nullable=True)  # Kept as entered (usually YYYY-MM-DD)

    # Classification
    source = Column(String, nullable=True)
    customer_type = Column(String, nullable=False, default="retail")
    tags = Column(JSON, nullable=True, default=list)

    # Free text, imports append to it instead of replacing
    note = Column(Text, nullable=True)

    created_by = Column(String, nullable=True)

    # One customer per phone number inside a tenant
    __table_args__ = (
        UniqueConstraint('tenant_id', 'phone', name='uix_customer_tenant_phone'),
    )

    @property
    def display_name(self) -> str:
        """Get display name, falling back to phone if name is empty."""
        return self.name if self.name else (self.phone or "")

    @property
    def formatted_phone(self) -> str:
        """Get phone number formatted for display."""
        return format_phone_display(self.phone or "")
