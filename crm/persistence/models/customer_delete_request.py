"""Customer delete request model."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Index, String, Text, Uuid, text

from crm.persistence.database import Base


class DeleteRequestStatus(str, Enum):
    """Lifecycle of a delete request. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


_PENDING_ONLY = text("request_status = 'PENDING'")


class CustomerDeleteRequest(Base):
    """Request to soft-delete a customer, resolved by an admin.

    The customer's name and phone are copied in at creation so the request
    still reads correctly after the customer is gone.
    """

    __tablename__ = "customer_delete_requests"
    __table_args__ = (
        # At most one PENDING request per customer
        Index(
            "uq_customer_delete_requests_pending",
            "customer_id",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)

    requested_by_id = Column(Uuid, ForeignKey("sales.id"), nullable=False, index=True)
    requested_by_phone = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)

    request_status = Column(
        SAEnum(
            DeleteRequestStatus,
            name="delete_request_status",
            native_enum=False,
            create_constraint=True,
            length=16,
        ),
        nullable=False,
        default=DeleteRequestStatus.PENDING,
        index=True,
    )
    reviewed_by = Column(String(20), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    approval_reason = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    @property
    def is_pending(self) -> bool:
        return self.request_status == DeleteRequestStatus.PENDING

    def approve(self, reviewer_phone: str, reason: str | None = None) -> None:
        self.request_status = DeleteRequestStatus.APPROVED
        self.reviewed_by = reviewer_phone
        self.reviewed_at = datetime.utcnow()
        self.approval_reason = reason

    def reject(self, reviewer_phone: str, rejection_reason: str) -> None:
        self.request_status = DeleteRequestStatus.REJECTED
        self.reviewed_by = reviewer_phone
        self.reviewed_at = datetime.utcnow()
        self.rejection_reason = rejection_reason

    def __repr__(self) -> str:
        return (
            f"<CustomerDeleteRequest(id={self.id}, customer_id={self.customer_id}, "
            f"status={self.request_status}, requested_by={self.requested_by_phone})>"
        )
