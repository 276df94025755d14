"""Customer schemas."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from crm.persistence.models.customer import (
    CertificateType,
    CustomerStatus,
    CustomerType,
    EducationLevel,
)


class CustomerCreate(BaseModel):
    """Customer creation request."""

    name: str
    phone: str
    certificate_issuer: str | None = None
    business_requirements: str | None = None
    certificate_type: CertificateType | None = None
    age: int | None = None
    education: EducationLevel | None = None
    gender: str | None = None
    address: str | None = None
    id_card: str | None = None
    customer_agent: str | None = None
    customer_type: CustomerType | None = None
    current_status: CustomerStatus | None = Field(default=None, alias="currentStatus")

    class Config:
        populate_by_name = True


class CustomerUpdate(BaseModel):
    """Field update request.

    Unknown keys are kept so the service can reject protected fields
    (status, owner, id) by name instead of silently dropping them.
    """

    name: str | None = None
    phone: str | None = None
    certificate_issuer: str | None = None
    business_requirements: str | None = None
    certificate_type: CertificateType | None = None
    age: int | None = None
    education: EducationLevel | None = None
    gender: str | None = None
    address: str | None = None
    id_card: str | None = None
    customer_agent: str | None = None
    customer_type: CustomerType | None = None

    class Config:
        extra = "allow"


class CustomerResponse(BaseModel):
    """Customer response."""

    id: uuid.UUID
    name: str
    phone: str
    certificate_issuer: str | None
    business_requirements: str | None
    certificate_type: CertificateType | None
    age: int | None
    education: EducationLevel | None
    gender: str | None
    address: str | None
    id_card: str | None
    customer_agent: str | None
    customer_type: CustomerType
    sales_phone: str | None
    current_status: CustomerStatus
    certified_at: date | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
    version: int

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    """Page of customers."""

    customers: list[CustomerResponse]
    total: int
    page: int
    limit: int


class StatusTransitionRequest(BaseModel):
    """Status change request."""

    to_status: str = Field(alias="toStatus")
    reason: str | None = None

    class Config:
        populate_by_name = True


class ValidTransitionsResponse(BaseModel):
    """Statuses reachable from the customer's current status."""

    current_status: CustomerStatus
    valid_transitions: list[CustomerStatus]


class CanTransitionResponse(BaseModel):
    """Single-target transition check."""

    current_status: CustomerStatus
    to_status: str
    valid: bool


class StatusHistoryResponse(BaseModel):
    """Status history entry."""

    id: int
    customer_id: uuid.UUID
    from_status: CustomerStatus | None
    to_status: CustomerStatus
    reason: str | None
    changed_by: str | None
    changed_at: datetime

    class Config:
        from_attributes = True


class StatusHistoryListResponse(BaseModel):
    """Page of status history, newest first."""

    history: list[StatusHistoryResponse]
    total: int


class PhoneAvailabilityResponse(BaseModel):
    """Phone availability check."""

    phone: str
    available: bool


class StatisticsResponse(BaseModel):
    """Counts per status."""

    total: int
    by_status: dict[str, int]
