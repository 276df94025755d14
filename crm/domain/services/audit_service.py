"""Audit logging service for customer, delete-request and account actions."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.models.audit_log import AuditAction
from crm.persistence.models.customer import Customer
from crm.persistence.models.customer_delete_request import CustomerDeleteRequest
from crm.persistence.models.sales import Sales
from crm.persistence.repositories.audit_log_repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Service for creating audit log entries.

    Entries are added to the caller's session and committed with the change
    they describe. A failure to write one fails the whole operation.

    Usage:
        audit = AuditService(db)
        await audit.log_customer_action(AuditAction.CUSTOMER_DELETED, actor, customer)
    """

    def __init__(self, session: AsyncSession):
        """Initialize audit service."""
        self.repo = AuditLogRepository(session)

    async def log(
        self,
        action: AuditAction | str,
        actor: Sales | None = None,
        actor_phone: str | None = None,
        resource_type: str | None = None,
        resource_id: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Create an audit log entry.

        Args:
            action: The action being logged
            actor: The account performing the action (optional)
            actor_phone: Phone if the account row is not available
            resource_type: Type of resource affected
            resource_id: ID of the specific resource
            details: Additional action-specific details
        """
        await self.repo.create(
            action=action,
            actor_phone=actor.phone if actor else actor_phone,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
        )
        logger.debug(
            "Audit entry written",
            extra={"action": str(getattr(action, "value", action)), "resource_id": str(resource_id)},
        )

    async def log_login(self, phone: str, success: bool = True) -> None:
        """Log a login attempt."""
        action = AuditAction.LOGIN if success else AuditAction.LOGIN_FAILED
        await self.log(action=action, actor_phone=phone, resource_type="sales", resource_id=phone)

    async def log_customer_action(
        self,
        action: AuditAction,
        actor: Sales,
        customer: Customer,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log an action on a customer."""
        await self.log(
            action=action,
            actor=actor,
            resource_type="customer",
            resource_id=customer.id,
            details={"phone": customer.phone, "name": customer.name, **(details or {})},
        )

    async def log_delete_request_action(
        self,
        action: AuditAction,
        actor: Sales,
        request: CustomerDeleteRequest,
        reason: str | None = None,
    ) -> None:
        """Log creation or review of a delete request."""
        await self.log(
            action=action,
            actor=actor,
            resource_type="delete_request",
            resource_id=request.id,
            details={
                "customer_id": str(request.customer_id),
                "customer_phone": request.customer_phone,
                "reason": reason,
            },
        )

    async def log_user_action(
        self,
        action: AuditAction,
        actor: Sales | None,
        target: Sales,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log registration or an approval decision on a sales account."""
        await self.log(
            action=action,
            actor=actor,
            actor_phone=target.phone if actor is None else None,
            resource_type="sales",
            resource_id=target.phone,
            details={"reason": reason, **(details or {})},
        )
