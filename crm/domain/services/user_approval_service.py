"""Admin review of sales account registrations."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from crm.domain import access_policy
from crm.domain.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from crm.domain.services.audit_service import AuditService
from crm.persistence.database import transaction
from crm.persistence.models.audit_log import AuditAction, AuditLog
from crm.persistence.models.sales import ApprovalStatus, Sales, SalesRole
from crm.persistence.repositories.audit_log_repository import AuditLogRepository
from crm.persistence.repositories.sales_repository import SalesRepository

logger = logging.getLogger(__name__)


class UserApprovalService:
    """Approve, reject, reset, enable and disable sales accounts.

    Every method requires an active ADMIN and writes an audit entry in the
    same transaction as the change.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user approval service."""
        self.session = session
        self.sales_repo = SalesRepository(session)
        self.audit_repo = AuditLogRepository(session)
        self.audit = AuditService(session)

    def _require_admin(self, admin: Sales, action: str) -> None:
        if not access_policy.can_administer(admin):
            logger.info(
                "Policy rejection",
                extra={"actor_phone": getattr(admin, "phone", None), "action": action},
            )
            raise ForbiddenError(f"Not allowed to {action}")

    async def _get_account(self, phone: str) -> Sales:
        sales = await self.sales_repo.get_by_phone(phone)
        if sales is None:
            raise NotFoundError(f"User {phone} not found")
        return sales

    async def approve(
        self,
        phone: str,
        admin: Sales,
        reason: str | None = None,
        role: SalesRole | None = None,
    ) -> Sales:
        """Approve a registration, optionally assigning a non-admin role.

        Raises:
            NotFoundError: Unknown phone
            ConflictError: Account already approved
            ValidationFailedError: Requested role is ADMIN
        """
        self._require_admin(admin, "approve users")
        if role == SalesRole.ADMIN:
            raise ValidationFailedError("Cannot change user role to ADMIN")

        async with transaction(self.session):
            sales = await self._get_account(phone)
            if sales.approval_status == ApprovalStatus.APPROVED:
                raise ConflictError("User is already approved")

            previous_role = sales.role
            if role is not None:
                sales.role = role
            sales.approval_status = ApprovalStatus.APPROVED
            sales.approved_by_phone = admin.phone
            sales.approved_at = datetime.utcnow()
            sales.rejection_reason = None
            await self.session.flush()

            await self.audit.log_user_action(
                AuditAction.USER_APPROVED,
                admin,
                sales,
                reason,
                details={"previous_role": previous_role.value, "role": sales.role.value},
            )

        logger.info("User approved", extra={"phone": phone, "approved_by": admin.phone})
        return sales

    async def reject(self, phone: str, admin: Sales, reason: str) -> Sales:
        """Reject a registration; the reason is shown to nobody but admins."""
        self._require_admin(admin, "reject users")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailedError("A rejection reason is required")

        async with transaction(self.session):
            sales = await self._get_account(phone)
            if sales.approval_status == ApprovalStatus.REJECTED:
                raise ConflictError("User is already rejected")
            if sales.phone == admin.phone:
                raise ConflictError("Cannot reject your own account")

            sales.approval_status = ApprovalStatus.REJECTED
            sales.approved_by_phone = admin.phone
            sales.approved_at = None
            sales.rejection_reason = reason
            await self.session.flush()

            await self.audit.log_user_action(AuditAction.USER_REJECTED, admin, sales, reason)

        logger.info("User rejected", extra={"phone": phone, "rejected_by": admin.phone})
        return sales

    async def reset(self, phone: str, admin: Sales, reason: str | None = None) -> Sales:
        """Put an account back to PENDING."""
        self._require_admin(admin, "reset users")

        async with transaction(self.session):
            sales = await self._get_account(phone)
            if sales.phone == admin.phone:
                raise ConflictError("Cannot reset your own account")

            sales.approval_status = ApprovalStatus.PENDING
            sales.approved_by_phone = None
            sales.approved_at = None
            sales.rejection_reason = None
            await self.session.flush()

            await self.audit.log_user_action(AuditAction.USER_RESET, admin, sales, reason)

        logger.info("User reset to pending", extra={"phone": phone, "reset_by": admin.phone})
        return sales

    async def set_enabled(
        self, phone: str, admin: Sales, enabled: bool, reason: str | None = None
    ) -> Sales:
        """Enable or disable an approved account."""
        self._require_admin(admin, "enable or disable users")

        async with transaction(self.session):
            sales = await self._get_account(phone)
            if not sales.is_approved:
                raise ConflictError("Only approved users can be enabled or disabled")
            if bool(sales.enabled) == enabled:
                raise ConflictError(f"User is already {'enabled' if enabled else 'disabled'}")
            if not enabled and sales.phone == admin.phone:
                raise ConflictError("Cannot disable your own account")

            sales.enabled = enabled
            await self.session.flush()

            action = AuditAction.USER_ENABLED if enabled else AuditAction.USER_DISABLED
            await self.audit.log_user_action(action, admin, sales, reason)

        logger.info(
            "User enabled" if enabled else "User disabled",
            extra={"phone": phone, "changed_by": admin.phone},
        )
        return sales

    async def list_by_status(
        self, admin: Sales, status: ApprovalStatus, page: int = 0, limit: int = 20
    ) -> tuple[list[Sales], int]:
        """Accounts in one approval state, oldest first."""
        self._require_admin(admin, "list users")
        items = await self.sales_repo.list_by_approval_status(
            status, skip=max(page, 0) * limit, limit=limit
        )
        total = await self.sales_repo.count(approval_status=status)
        return items, total

    async def history(self, phone: str, admin: Sales) -> list[AuditLog]:
        """Audit entries recorded against an account, newest first."""
        self._require_admin(admin, "view user history")
        await self._get_account(phone)
        return await self.audit_repo.list_for_resource("sales", phone)

    async def get_statistics(self, admin: Sales) -> dict[str, Any]:
        """Account counts per approval state."""
        self._require_admin(admin, "view user statistics")
        counts = {
            status.value: await self.sales_repo.count(approval_status=status)
            for status in ApprovalStatus
        }
        return {"total": sum(counts.values()), "by_status": counts}
