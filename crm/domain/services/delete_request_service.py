"""Two-step customer deletion: a request by one account, review by an admin."""

import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from crm.domain import access_policy
from crm.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvariantViolationError,
    NotFoundError,
    ValidationFailedError,
)
from crm.domain.services.audit_service import AuditService
from crm.persistence.database import transaction
from crm.persistence.models.audit_log import AuditAction
from crm.persistence.models.customer_delete_request import (
    CustomerDeleteRequest,
    DeleteRequestStatus,
)
from crm.persistence.models.sales import Sales
from crm.persistence.repositories.customer_delete_request_repository import (
    CustomerDeleteRequestRepository,
)
from crm.persistence.repositories.customer_repository import CustomerRepository

logger = logging.getLogger(__name__)


def _deny(actor: Sales, action: str) -> ForbiddenError:
    logger.info(
        "Policy rejection",
        extra={"actor_phone": getattr(actor, "phone", None), "action": action},
    )
    return ForbiddenError(f"Not allowed to {action}")


class DeleteRequestService:
    """Service for customer delete requests.

    At most one PENDING request exists per customer. The check runs inside
    the creating transaction and the partial unique index
    ``uq_customer_delete_requests_pending`` backs it up against races.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize delete request service."""
        self.session = session
        self.request_repo = CustomerDeleteRequestRepository(session)
        self.customer_repo = CustomerRepository(session)
        self.audit = AuditService(session)

    async def _lock_pending(self, request_id: uuid.UUID) -> CustomerDeleteRequest:
        request = await self.request_repo.get_for_update(request_id)
        if request is None:
            raise NotFoundError(f"Delete request {request_id} not found")
        if not request.is_pending:
            logger.warning(
                "Delete request already reviewed",
                extra={"request_id": str(request_id), "status": request.request_status.value},
            )
            raise ConflictError(
                f"Delete request {request_id} is already {request.request_status.value}"
            )
        return request

    async def create_delete_request(
        self, customer_id: uuid.UUID, requester: Sales, reason: str
    ) -> CustomerDeleteRequest:
        """Ask for a customer to be deleted.

        The customer's name and phone are copied onto the request.

        Args:
            customer_id: Customer to delete
            requester: Sales account asking
            reason: Why the customer should go; required

        Returns:
            The PENDING request

        Raises:
            NotFoundError: Customer missing or already deleted
            ForbiddenError: Requester may not ask for this customer's deletion
            ConflictError: A PENDING request already exists for the customer
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailedError("A reason is required to request deletion")

        async with transaction(self.session):
            customer = await self.customer_repo.get_for_update(customer_id)
            if customer is None:
                raise NotFoundError(f"Customer {customer_id} not found")
            if not access_policy.can_request_delete(requester, customer):
                raise _deny(requester, "request deletion of this customer")

            if await self.request_repo.get_pending_for_customer(customer_id) is not None:
                logger.warning(
                    "Duplicate delete request", extra={"customer_id": str(customer_id)}
                )
                raise ConflictError(
                    f"A pending delete request already exists for customer {customer_id}"
                )

            try:
                request = await self.request_repo.create(
                    customer_id=customer.id,
                    customer_name=customer.name,
                    customer_phone=customer.phone,
                    requested_by_id=requester.id,
                    requested_by_phone=requester.phone,
                    reason=reason,
                    request_status=DeleteRequestStatus.PENDING,
                )
            except IntegrityError as e:
                logger.warning(
                    "Concurrent delete request lost the race",
                    extra={"customer_id": str(customer_id)},
                )
                raise ConflictError(
                    f"A pending delete request already exists for customer {customer_id}"
                ) from e

            await self.audit.log_delete_request_action(
                AuditAction.DELETE_REQUEST_CREATED, requester, request, reason
            )

        logger.info(
            "Delete request created",
            extra={"request_id": str(request.id), "customer_id": str(customer_id)},
        )
        return request

    async def approve_delete_request(
        self, request_id: uuid.UUID, reviewer: Sales, reason: str | None = None
    ) -> CustomerDeleteRequest:
        """Approve a PENDING request and soft-delete its customer in one transaction.

        A customer that is already soft-deleted is left as it is.
        """
        if not access_policy.can_approve_delete(reviewer):
            raise _deny(reviewer, "approve delete requests")
        reason = (reason or "").strip() or None

        async with transaction(self.session):
            request = await self._lock_pending(request_id)

            customer = await self.customer_repo.get_for_update(
                request.customer_id, include_deleted=True
            )
            if customer is None:
                logger.error(
                    "Delete request points at a missing customer row",
                    extra={"request_id": str(request_id), "customer_id": str(request.customer_id)},
                )
                raise InvariantViolationError(
                    f"Customer {request.customer_id} of delete request {request_id} does not exist"
                )

            if not customer.is_deleted:
                customer.soft_delete()
                await self.audit.log_customer_action(
                    AuditAction.CUSTOMER_DELETED,
                    reviewer,
                    customer,
                    details={"delete_request_id": str(request.id)},
                )
            request.approve(reviewer.phone, reason)

            try:
                await self.session.flush()
            except StaleDataError as e:
                raise ConflictError(
                    "Customer was changed by another request; reload and retry"
                ) from e

            await self.audit.log_delete_request_action(
                AuditAction.DELETE_REQUEST_APPROVED, reviewer, request, reason
            )

        logger.info(
            "Delete request approved",
            extra={"request_id": str(request_id), "customer_id": str(request.customer_id)},
        )
        return request

    async def reject_delete_request(
        self, request_id: uuid.UUID, reviewer: Sales, rejection_reason: str
    ) -> CustomerDeleteRequest:
        """Reject a PENDING request. The customer is not touched."""
        if not access_policy.can_approve_delete(reviewer):
            raise _deny(reviewer, "reject delete requests")
        rejection_reason = (rejection_reason or "").strip()
        if not rejection_reason:
            raise ValidationFailedError("A rejection reason is required")

        async with transaction(self.session):
            request = await self._lock_pending(request_id)
            request.reject(reviewer.phone, rejection_reason)
            await self.session.flush()
            await self.audit.log_delete_request_action(
                AuditAction.DELETE_REQUEST_REJECTED, reviewer, request, rejection_reason
            )

        logger.info("Delete request rejected", extra={"request_id": str(request_id)})
        return request

    async def get_delete_request(
        self, request_id: uuid.UUID, actor: Sales
    ) -> CustomerDeleteRequest:
        """Get a request. Admins see all; others only their own."""
        request = await self.request_repo.get_by_id(request_id)
        if request is None:
            raise NotFoundError(f"Delete request {request_id} not found")
        if not access_policy.can_administer(actor) and not (
            access_policy.is_active(actor) and request.requested_by_id == actor.id
        ):
            raise _deny(actor, "view this delete request")
        return request

    async def list_delete_requests(
        self,
        actor: Sales,
        status: DeleteRequestStatus | None = None,
        page: int = 0,
        limit: int = 20,
    ) -> tuple[list[CustomerDeleteRequest], int]:
        """List requests, optionally by state (admin only)."""
        if not access_policy.can_administer(actor):
            raise _deny(actor, "list delete requests")
        return await self.request_repo.list_requests(
            status=status, skip=max(page, 0) * limit, limit=limit
        )

    async def list_pending(
        self, actor: Sales, page: int = 0, limit: int = 20
    ) -> tuple[list[CustomerDeleteRequest], int]:
        return await self.list_delete_requests(
            actor, status=DeleteRequestStatus.PENDING, page=page, limit=limit
        )

    async def list_by_requester(
        self, actor: Sales, page: int = 0, limit: int = 20
    ) -> tuple[list[CustomerDeleteRequest], int]:
        """The actor's own requests."""
        if not access_policy.is_active(actor):
            raise _deny(actor, "list delete requests")
        return await self.request_repo.list_requests(
            requested_by_id=actor.id, skip=max(page, 0) * limit, limit=limit
        )

    async def count_pending(self, actor: Sales) -> int:
        if not access_policy.can_administer(actor):
            raise _deny(actor, "count delete requests")
        return await self.request_repo.count(request_status=DeleteRequestStatus.PENDING)

    async def get_statistics(self, actor: Sales) -> dict[str, Any]:
        """Request counts per state (admin only)."""
        if not access_policy.can_administer(actor):
            raise _deny(actor, "view delete request statistics")
        counts = await self.request_repo.count_by_status()
        return {
            "total": sum(counts.values()),
            "by_status": {status.value: count for status, count in counts.items()},
        }
