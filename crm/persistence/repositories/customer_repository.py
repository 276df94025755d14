"""Customer repository."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.models.customer import (
    CertificateType,
    Customer,
    CustomerStatus,
    CustomerType,
)
from crm.persistence.repositories.base import BaseRepository


@dataclass
class CustomerFilters:
    """Search criteria for customer listings. Unset fields do not filter."""

    query: str | None = None
    phone: str | None = None
    statuses: list[CustomerStatus] = field(default_factory=list)
    certificate_types: list[CertificateType] = field(default_factory=list)
    certificate_issuer: str | None = None
    customer_agent: str | None = None
    customer_type: CustomerType | None = None
    certified_from: date | None = None
    certified_to: date | None = None
    sales_phone: str | None = None
    include_deleted: bool = False


class CustomerRepository(BaseRepository[Customer]):
    """Repository for Customer entities."""

    def __init__(self, session: AsyncSession):
        """Initialize customer repository."""
        super().__init__(Customer, session)

    async def get_by_id(self, id: uuid.UUID) -> Customer | None:
        """Get live customer by ID (excludes soft-deleted)."""
        stmt = select(Customer).where(Customer.id == id, Customer.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id_including_deleted(self, id: uuid.UUID) -> Customer | None:
        """Get customer by ID regardless of soft-delete state."""
        stmt = select(Customer).where(Customer.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_update(
        self, id: uuid.UUID, include_deleted: bool = False
    ) -> Customer | None:
        """Load a customer row with a row lock for a read-check-write.

        ``populate_existing`` refreshes an instance already in the identity
        map, so the caller always checks against the stored row.
        """
        stmt = (
            select(Customer)
            .where(Customer.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if not include_deleted:
            stmt = stmt.where(Customer.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_phone_including_deleted(self, phone: str) -> Customer | None:
        """Get customer by phone, including soft-deleted rows."""
        stmt = select(Customer).where(Customer.phone == phone)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _apply_filters(self, stmt: Select, filters: CustomerFilters) -> Select:
        if not filters.include_deleted:
            stmt = stmt.where(Customer.deleted_at.is_(None))
        if filters.sales_phone:
            stmt = stmt.where(Customer.sales_phone == filters.sales_phone)
        if filters.query:
            pattern = f"%{filters.query.strip()}%"
            stmt = stmt.where(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.phone.ilike(pattern),
                    Customer.customer_agent.ilike(pattern),
                )
            )
        if filters.phone:
            stmt = stmt.where(Customer.phone.contains(filters.phone.strip()))
        if filters.statuses:
            stmt = stmt.where(Customer.current_status.in_(filters.statuses))
        if filters.certificate_types:
            stmt = stmt.where(Customer.certificate_type.in_(filters.certificate_types))
        if filters.certificate_issuer:
            stmt = stmt.where(Customer.certificate_issuer == filters.certificate_issuer)
        if filters.customer_agent:
            stmt = stmt.where(Customer.customer_agent.ilike(f"%{filters.customer_agent.strip()}%"))
        if filters.customer_type:
            stmt = stmt.where(Customer.customer_type == filters.customer_type)
        if filters.certified_from:
            stmt = stmt.where(Customer.certified_at >= filters.certified_from)
        if filters.certified_to:
            stmt = stmt.where(Customer.certified_at <= filters.certified_to)
        return stmt

    async def search(
        self, filters: CustomerFilters, skip: int = 0, limit: int = 20
    ) -> tuple[list[Customer], int]:
        """Search customers.

        Args:
            filters: Search criteria
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (page of customers, total matching count)
        """
        count_stmt = self._apply_filters(select(func.count()).select_from(Customer), filters)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            self._apply_filters(select(Customer), filters)
            .order_by(Customer.created_at.desc(), Customer.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def count_by_status(self, sales_phone: str | None = None) -> dict[CustomerStatus, int]:
        """Count live customers per status, optionally for one owner."""
        stmt = (
            select(Customer.current_status, func.count())
            .where(Customer.deleted_at.is_(None))
            .group_by(Customer.current_status)
        )
        if sales_phone:
            stmt = stmt.where(Customer.sales_phone == sales_phone)
        result = await self.session.execute(stmt)
        counts = {status: 0 for status in CustomerStatus}
        for status, count in result.all():
            counts[CustomerStatus(status)] = count
        return counts

    async def list_updated_since(
        self,
        since: datetime,
        sales_phone: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Customer], int]:
        """Live customers updated at or after ``since``, most recently updated first."""
        conditions = [Customer.deleted_at.is_(None), Customer.updated_at >= since]
        if sales_phone:
            conditions.append(Customer.sales_phone == sales_phone)

        count_stmt = select(func.count()).select_from(Customer).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(Customer)
            .where(*conditions)
            .order_by(Customer.updated_at.desc(), Customer.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total
