"""Status history model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, Uuid

from crm.persistence.database import Base
from crm.persistence.models.customer import CustomerStatus


class StatusHistory(Base):
    """One row per status change of a customer.

    ``from_status`` is NULL for the entry written when the customer is
    created. Rows are never updated or deleted.
    """

    __tablename__ = "status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False, index=True)
    from_status = Column(
        SAEnum(CustomerStatus, name="history_from_status", native_enum=False, length=32),
        nullable=True,
    )
    to_status = Column(
        SAEnum(CustomerStatus, name="history_to_status", native_enum=False, length=32),
        nullable=False,
    )
    reason = Column(Text, nullable=True)
    changed_by = Column(String(20), nullable=True)  # actor phone
    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<StatusHistory(customer_id={self.customer_id}, "
            f"{self.from_status} -> {self.to_status}, changed_at={self.changed_at})>"
        )
