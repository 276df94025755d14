"""Status history repository."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.models.customer import CustomerStatus
from crm.persistence.models.status_history import StatusHistory


class StatusHistoryRepository:
    """Append-only access to status history.

    Note: This repository intentionally does NOT extend BaseRepository.
    History rows are only ever inserted and read back.
    """

    def __init__(self, session: AsyncSession):
        """Initialize status history repository."""
        self.session = session

    async def append(
        self,
        customer_id: uuid.UUID,
        from_status: CustomerStatus | None,
        to_status: CustomerStatus,
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> StatusHistory:
        """Insert a history entry and flush it."""
        entry = StatusHistory(
            customer_id=customer_id,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            changed_by=changed_by,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_for_customer(
        self, customer_id: uuid.UUID, skip: int = 0, limit: int | None = None
    ) -> list[StatusHistory]:
        """List entries for a customer, newest first."""
        stmt = (
            select(StatusHistory)
            .where(StatusHistory.customer_id == customer_id)
            .order_by(StatusHistory.id.desc())
            .offset(skip)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_customer(self, customer_id: uuid.UUID) -> int:
        """Count entries for a customer."""
        stmt = select(func.count()).select_from(StatusHistory).where(
            StatusHistory.customer_id == customer_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()
