"""Repository implementations."""

from crm.persistence.repositories.audit_log_repository import AuditLogRepository
from crm.persistence.repositories.base import BaseRepository
from crm.persistence.repositories.customer_delete_request_repository import (
    CustomerDeleteRequestRepository,
)
from crm.persistence.repositories.customer_repository import CustomerFilters, CustomerRepository
from crm.persistence.repositories.sales_repository import SalesRepository
from crm.persistence.repositories.status_history_repository import StatusHistoryRepository

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "CustomerDeleteRequestRepository",
    "CustomerFilters",
    "CustomerRepository",
    "SalesRepository",
    "StatusHistoryRepository",
]
