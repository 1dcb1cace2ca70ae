"""
Customer repository for database operations related to tenant customers.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PersistenceError
from app.db.repositories.base import BaseRepository
from app.models.customer import Customer
from app.schemas.customer import CustomerCreate, CustomerUpdate
from app.services.imports.duplicates import ExistingRecord
from app.utils.ids import generate_prefixed_id, IDPrefix

logger = logging.getLogger("crm_import.db")


class CustomerRepository(BaseRepository[Customer, CustomerCreate, CustomerUpdate]):
    """Customer repository for database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session and Customer model."""
        super().__init__(session=session, model=Customer)

    async def fetch_existing(self, tenant_id: str) -> List[ExistingRecord]:
        """
        Load the merge-relevant view of every customer with a phone.

        Args:
            tenant_id: Tenant to scope the query to

        Returns:
            List[ExistingRecord]: Oldest customers first
        """
        result = await self.session.execute(
            select(Customer)
            .where(Customer.tenant_id == tenant_id, Customer.phone.isnot(None))
            .order_by(Customer.created_at)
        )
        return [
            ExistingRecord.from_fields(customer.id, customer.dict())
            for customer in result.scalars().all()
        ]

    async def get_for_tenant(self, customer_id: str, tenant_id: str) -> Optional[Customer]:
        result = await self.session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone: str, tenant_id: str) -> Optional[Customer]:
        result = await self.session.execute(
            select(Customer).where(Customer.phone == phone, Customer.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        tenant_id: str,
        q: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Customer], int]:
        """
        List customers of a tenant, newest first, with optional text search.

        Args:
            tenant_id: Tenant ID
            q: Matches name, phone or email (case-insensitive substring)
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple[List[Customer], int]: (customers, total_count)
        """
        conditions = [Customer.tenant_id == tenant_id]
        if q:
            pattern = f"%{q.strip().lower()}%"
            conditions.append(or_(
                func.lower(Customer.name).like(pattern),
                Customer.phone.like(pattern),
                func.lower(Customer.email).like(pattern),
            ))

        total_result = await self.session.execute(
            select(func.count(Customer.id)).where(*conditions)
        )
        total = total_result.scalar() or 0

        result = await self.session.execute(
            select(Customer)
            .where(*conditions)
            .order_by(desc(Customer.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def create_customer(self, fields: Dict[str, Any]) -> Customer:
        """
        Insert one customer in its own transaction.

        Raises:
            PersistenceError: The insert failed and was rolled back
        """
        obj_in = {**CustomerCreate(**fields).model_dump(), "id": generate_prefixed_id(IDPrefix.CUSTOMER)}
        try:
            customer = await self.create(obj_in=obj_in)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Failed to create customer with phone {fields.get('phone')}: {str(e)}")
            raise PersistenceError(
                f"Không thể tạo khách hàng: {e.__class__.__name__}",
                details={"phone": fields.get("phone")},
            ) from e
        return customer

    async def update_customer(self, customer_id: str, tenant_id: str, patch: Dict[str, Any]) -> Customer:
        """
        Apply a merge patch to one customer in its own transaction.

        Raises:
            PersistenceError: Customer missing, or the update failed and was rolled back
        """
        customer = await self.get_for_tenant(customer_id, tenant_id)
        if customer is None:
            raise PersistenceError(f"Customer {customer_id} not found", details={"id": customer_id})

        for field, value in CustomerUpdate(**patch).model_dump(exclude_unset=True).items():
            setattr(customer, field, value)
        self.session.add(customer)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Failed to update customer {customer_id}: {str(e)}")
            raise PersistenceError(
                f"Không thể cập nhật khách hàng: {e.__class__.__name__}",
                details={"id": customer_id},
            ) from e
        return customer


class TenantCustomerStore:
    """Record store for the batch executor, bound to one tenant and user."""

    def __init__(self, repository: CustomerRepository, tenant_id: str, created_by: Optional[str] = None):
        self.repository = repository
        self.tenant_id = tenant_id
        self.created_by = created_by

    async def fetch_existing(self, tenant_id: Optional[str] = None) -> List[ExistingRecord]:
        return await self.repository.fetch_existing(tenant_id or self.tenant_id)

    async def create_record(self, fields: Dict[str, Any]) -> str:
        customer = await self.repository.create_customer({
            **fields,
            "tenant_id": self.tenant_id,
            "created_by": self.created_by,
        })
        return customer.id

    async def update_record(self, record_id: str, patch: Dict[str, Any]) -> None:
        await self.repository.update_customer(record_id, self.tenant_id, patch)
