# app/api/v1/endpoints/customers.py
"""
API endpoints for browsing customers.
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.dependencies import get_tenant_id
from app.core.exceptions import NotFoundError
from app.db.repositories.customers import CustomerRepository
from app.db.session import get_db
from app.schemas.customer import CustomerResponse
from app.utils.pagination import PaginationParams, paginate_response

router = APIRouter()


@router.get("/", response_model=Dict[str, Any])
async def list_customers(
    pagination: PaginationParams = Depends(),
    q: Optional[str] = Query(None, description="Search by name, phone or email"),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """
    List the tenant's customers with pagination, newest first.
    """
    customers, total = await CustomerRepository(db).search(
        tenant_id,
        q=q,
        skip=pagination.skip,
        limit=pagination.limit,
    )
    return paginate_response(
        items=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        pagination=pagination,
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str = Path(..., description="Customer ID"),
    tenant_id: str = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Get a specific customer.
    """
    customer = await CustomerRepository(db).get_for_tenant(customer_id, tenant_id)
    if not customer:
        raise NotFoundError(message=f"Customer {customer_id} not found")
    return customer
