"""Sales account model."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, String, Text, Uuid

from crm.persistence.database import Base


class SalesRole(str, Enum):
    """Access level of a sales account."""

    ADMIN = "ADMIN"
    OFFICER = "OFFICER"
    CUSTOMER_AGENT = "CUSTOMER_AGENT"
    SALES = "SALES"


class ApprovalStatus(str, Enum):
    """Registration approval state of a sales account."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Sales(Base):
    """Sales account; the phone number is the actor identity."""

    __tablename__ = "sales"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    phone = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        SAEnum(SalesRole, name="sales_role", native_enum=False, length=32),
        nullable=False,
        default=SalesRole.SALES,
    )
    enabled = Column(Boolean, default=True, nullable=False)

    approval_status = Column(
        SAEnum(ApprovalStatus, name="approval_status", native_enum=False, length=16),
        nullable=False,
        default=ApprovalStatus.PENDING,
        index=True,
    )
    approved_by_phone = Column(String(20), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED

    def __repr__(self) -> str:
        return f"<Sales(id={self.id}, phone={self.phone}, role={self.role}, approval={self.approval_status})>"
