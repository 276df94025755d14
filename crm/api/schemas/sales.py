"""Sales account and approval schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from crm.persistence.models.sales import ApprovalStatus, SalesRole


class RegisterRequest(BaseModel):
    """Registration request."""

    phone: str
    password: str
    name: str | None = None


class RegisterResponse(BaseModel):
    """Registration response."""

    phone: str
    approval_status: ApprovalStatus
    message: str


class LoginRequest(BaseModel):
    """Login request."""

    phone: str
    password: str


class LoginResponse(BaseModel):
    """Login response."""

    access_token: str
    token_type: str = "bearer"
    phone: str
    role: SalesRole


class SalesResponse(BaseModel):
    """Sales account response."""

    id: uuid.UUID
    phone: str
    name: str | None
    role: SalesRole
    enabled: bool
    approval_status: ApprovalStatus
    approved_by_phone: str | None
    approved_at: datetime | None
    rejection_reason: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class SalesListResponse(BaseModel):
    """Page of sales accounts."""

    users: list[SalesResponse]
    total: int
    page: int
    limit: int


class ApproveUserRequest(BaseModel):
    """Approve a registration, optionally with a role."""

    reason: str | None = None
    role: SalesRole | None = None


class RejectUserRequest(BaseModel):
    """Reject a registration."""

    reason: str


class UserActionRequest(BaseModel):
    """Reset, enable or disable an account."""

    reason: str | None = None


class AuditEntryResponse(BaseModel):
    """Audit log entry."""

    id: int
    actor_phone: str | None
    action: str
    resource_type: str | None
    resource_id: str | None
    details: dict[str, Any] | None
    created_at: datetime

    class Config:
        from_attributes = True
