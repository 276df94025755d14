"""Audit log model for tracking sensitive operations."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, JSON, String

from crm.persistence.database import Base


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Authentication
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"

    # Customers
    CUSTOMER_CREATED = "customer_created"
    CUSTOMER_DELETED = "customer_deleted"
    CUSTOMER_RESTORED = "customer_restored"

    # Delete requests
    DELETE_REQUEST_CREATED = "delete_request_created"
    DELETE_REQUEST_APPROVED = "delete_request_approved"
    DELETE_REQUEST_REJECTED = "delete_request_rejected"

    # Sales accounts
    USER_REGISTERED = "user_registered"
    USER_APPROVED = "user_approved"
    USER_REJECTED = "user_rejected"
    USER_RESET = "user_reset"
    USER_ENABLED = "user_enabled"
    USER_DISABLED = "user_disabled"


class AuditLog(Base):
    """Audit log for tracking who did what to which record, and when."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Who performed the action (phone is the actor identity)
    actor_phone = Column(String(20), nullable=True, index=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What resource was affected
    resource_type = Column(String(100), nullable=True)  # "customer", "delete_request", "sales"
    resource_id = Column(String(64), nullable=True, index=True)

    # Additional context
    details = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"actor_phone={self.actor_phone}, resource={self.resource_type}:{self.resource_id})>"
        )
