"""API schemas package."""

from crm.api.schemas.customer import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    StatusTransitionRequest,
)
from crm.api.schemas.delete_request import (
    DeleteRequestApprove,
    DeleteRequestCreate,
    DeleteRequestReject,
    DeleteRequestResponse,
)
from crm.api.schemas.sales import LoginRequest, LoginResponse, RegisterRequest, SalesResponse

__all__ = [
    "CustomerCreate",
    "CustomerListResponse",
    "CustomerResponse",
    "CustomerUpdate",
    "DeleteRequestApprove",
    "DeleteRequestCreate",
    "DeleteRequestReject",
    "DeleteRequestResponse",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "SalesResponse",
    "StatusTransitionRequest",
]
