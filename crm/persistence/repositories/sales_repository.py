"""Sales account repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.models.sales import ApprovalStatus, Sales
from crm.persistence.repositories.base import BaseRepository


class SalesRepository(BaseRepository[Sales]):
    """Repository for Sales accounts."""

    def __init__(self, session: AsyncSession):
        """Initialize sales repository."""
        super().__init__(Sales, session)

    async def get_by_phone(self, phone: str) -> Sales | None:
        """Get account by phone."""
        stmt = select(Sales).where(Sales.phone == phone)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_approval_status(
        self, status: ApprovalStatus, skip: int = 0, limit: int = 100
    ) -> list[Sales]:
        """List accounts in an approval state, oldest registration first."""
        stmt = (
            select(Sales)
            .where(Sales.approval_status == status)
            .order_by(Sales.created_at, Sales.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
