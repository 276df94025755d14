"""Domain services."""

from crm.domain.services.audit_service import AuditService
from crm.domain.services.auth_service import AuthService
from crm.domain.services.customer_service import CustomerService
from crm.domain.services.delete_request_service import DeleteRequestService
from crm.domain.services.user_approval_service import UserApprovalService

__all__ = [
    "AuditService",
    "AuthService",
    "CustomerService",
    "DeleteRequestService",
    "UserApprovalService",
]
