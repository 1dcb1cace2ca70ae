"""
Pydantic schemas for customer-related API operations.
"""
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.utils.phone import normalize_phone


class CustomerBase(BaseModel):
    """Base schema for customer data."""
    name: str = Field(..., description="Full name, family name first")
    phone: Optional[str] = Field(None, description="Phone number in local form (0xxxxxxxxx)")
    email: Optional[str] = Field(None, description="Email address")
    address: Optional[str] = Field(None, description="Postal address")
    birthday: Optional[str] = Field(None, description="Birthday as entered, usually YYYY-MM-DD")
    source: Optional[str] = Field(None, description="Where the customer came from")
    tags: Optional[List[str]] = Field(None, description="Free-form tags")
    note: Optional[str] = Field(None, description="Notes")


class CustomerCreate(CustomerBase):
    """Schema for creating a customer."""
    tenant_id: str = Field(..., description="Owning tenant")
    customer_type: str = Field("retail", description="Customer type")
    created_by: Optional[str] = Field(None, description="User who created the customer")

    @field_validator("phone")
    def normalize_phone_number(cls, v):
        """Store phones in normalized local form."""
        return normalize_phone(v) or None


class CustomerUpdate(BaseModel):
    """Schema for updating a customer; unset fields are left alone."""
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    birthday: Optional[str] = None
    source: Optional[str] = None
    tags: Optional[List[str]] = None
    note: Optional[str] = None
    updated_at: Optional[datetime] = None


class CustomerResponse(CustomerBase):
    """Schema for customer response."""
    id: str = Field(..., description="Customer ID")
    customer_type: str = Field(..., description="Customer type")
    display_name: str = Field(..., description="Name, or phone when the name is empty")
    formatted_phone: str = Field("", description="Phone formatted for display")
    created_by: Optional[str] = Field(None, description="User who created the customer")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        """Pydantic config."""
        from_attributes = True
