"""Audit log repository."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.persistence.models.audit_log import AuditAction, AuditLog


class AuditLogRepository:
    """Repository for audit log entries.

    Note: This repository intentionally does NOT extend BaseRepository.
    Entries are written inside the caller's transaction and never updated.
    """

    def __init__(self, session: AsyncSession):
        """Initialize audit log repository."""
        self.session = session

    async def create(
        self,
        action: str | AuditAction,
        actor_phone: str | None = None,
        resource_type: str | None = None,
        resource_id: Any = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Add a new audit log entry and flush it.

        Args:
            action: The action being logged (AuditAction enum or string)
            actor_phone: Phone of the account performing the action
            resource_type: Type of resource affected (e.g., "customer")
            resource_id: ID of the specific resource
            details: Additional action-specific details as JSON

        Returns:
            The created AuditLog entry
        """
        action_str = action.value if isinstance(action, AuditAction) else action

        audit_log = AuditLog(
            action=action_str,
            actor_phone=actor_phone,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details,
        )

        self.session.add(audit_log)
        await self.session.flush()
        return audit_log

    async def list_for_resource(
        self,
        resource_type: str,
        resource_id: Any,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLog]:
        """List audit logs for one resource, newest first."""
        stmt = (
            select(AuditLog)
            .where(
                AuditLog.resource_type == resource_type,
                AuditLog.resource_id == str(resource_id),
            )
            .order_by(AuditLog.id.desc())
            .offset(skip)
            .limit(limit)
        )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_all(
        self,
        skip: int = 0,
        limit: int = 100,
        action: str | AuditAction | None = None,
        actor_phone: str | None = None,
    ) -> list[AuditLog]:
        """List audit logs, optionally filtered by action or actor."""
        stmt = select(AuditLog)

        if action:
            action_str = action.value if isinstance(action, AuditAction) else action
            stmt = stmt.where(AuditLog.action == action_str)
        if actor_phone:
            stmt = stmt.where(AuditLog.actor_phone == actor_phone)

        stmt = stmt.order_by(AuditLog.id.desc()).offset(skip).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
