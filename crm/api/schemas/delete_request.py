"""Customer delete request schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from crm.persistence.models.customer_delete_request import DeleteRequestStatus


class DeleteRequestCreate(BaseModel):
    """Delete request creation request."""

    customer_id: uuid.UUID = Field(alias="customerId")
    reason: str

    class Config:
        populate_by_name = True


class DeleteRequestApprove(BaseModel):
    """Approval request; the reason is optional."""

    reason: str | None = None


class DeleteRequestReject(BaseModel):
    """Rejection request."""

    rejection_reason: str = Field(alias="rejectionReason")

    class Config:
        populate_by_name = True


class DeleteRequestResponse(BaseModel):
    """Delete request response."""

    id: uuid.UUID
    customer_id: uuid.UUID
    customer_name: str
    customer_phone: str
    requested_by_phone: str
    reason: str
    request_status: DeleteRequestStatus
    reviewed_by: str | None
    reviewed_at: datetime | None
    approval_reason: str | None
    rejection_reason: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class DeleteRequestListResponse(BaseModel):
    """Page of delete requests."""

    requests: list[DeleteRequestResponse]
    total: int
    page: int
    limit: int


class PendingCountResponse(BaseModel):
    """Number of PENDING requests."""

    count: int
