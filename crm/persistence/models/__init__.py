"""Database models."""

from crm.persistence.models.audit_log import AuditAction, AuditLog
from crm.persistence.models.customer import (
    CertificateType,
    Customer,
    CustomerStatus,
    CustomerType,
    EducationLevel,
)
from crm.persistence.models.customer_delete_request import CustomerDeleteRequest, DeleteRequestStatus
from crm.persistence.models.sales import ApprovalStatus, Sales, SalesRole
from crm.persistence.models.status_history import StatusHistory

__all__ = [
    "ApprovalStatus",
    "AuditAction",
    "AuditLog",
    "CertificateType",
    "Customer",
    "CustomerDeleteRequest",
    "CustomerStatus",
    "CustomerType",
    "DeleteRequestStatus",
    "EducationLevel",
    "Sales",
    "SalesRole",
    "StatusHistory",
]
