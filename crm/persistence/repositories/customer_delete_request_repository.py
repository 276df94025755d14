"""Customer delete request repository."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.models.customer_delete_request import (
    CustomerDeleteRequest,
    DeleteRequestStatus,
)
from crm.persistence.repositories.base import BaseRepository


class CustomerDeleteRequestRepository(BaseRepository[CustomerDeleteRequest]):
    """Repository for CustomerDeleteRequest entities."""

    def __init__(self, session: AsyncSession):
        """Initialize delete request repository."""
        super().__init__(CustomerDeleteRequest, session)

    async def get_for_update(self, id: uuid.UUID) -> CustomerDeleteRequest | None:
        """Load a request with a row lock so two reviewers cannot both resolve it."""
        stmt = (
            select(CustomerDeleteRequest)
            .where(CustomerDeleteRequest.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_for_customer(
        self, customer_id: uuid.UUID
    ) -> CustomerDeleteRequest | None:
        """Get the pending request for a customer, if any."""
        stmt = select(CustomerDeleteRequest).where(
            CustomerDeleteRequest.customer_id == customer_id,
            CustomerDeleteRequest.request_status == DeleteRequestStatus.PENDING,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_requests(
        self,
        status: DeleteRequestStatus | None = None,
        requested_by_id: uuid.UUID | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[CustomerDeleteRequest], int]:
        """List requests, newest first.

        Args:
            status: Only requests in this state
            requested_by_id: Only requests raised by this account
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (page of requests, total matching count)
        """
        conditions = []
        if status is not None:
            conditions.append(CustomerDeleteRequest.request_status == status)
        if requested_by_id is not None:
            conditions.append(CustomerDeleteRequest.requested_by_id == requested_by_id)

        count_stmt = select(func.count()).select_from(CustomerDeleteRequest).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(CustomerDeleteRequest)
            .where(*conditions)
            .order_by(CustomerDeleteRequest.created_at.desc(), CustomerDeleteRequest.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def count_by_status(self) -> dict[DeleteRequestStatus, int]:
        """Count requests per state."""
        stmt = select(CustomerDeleteRequest.request_status, func.count()).group_by(
            CustomerDeleteRequest.request_status
        )
        result = await self.session.execute(stmt)
        counts = {status: 0 for status in DeleteRequestStatus}
        for status, count in result.all():
            counts[DeleteRequestStatus(status)] = count
        return counts
