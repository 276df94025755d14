"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.deps import get_current_sales
from crm.api.errors import to_http_exception
from crm.api.schemas.sales import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SalesResponse,
)
from crm.domain.errors import CrmError
from crm.domain.services.auth_service import AuthService
from crm.persistence.database import get_db
from crm.persistence.models.sales import Sales

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RegisterResponse:
    """Register a sales account. It cannot log in until an admin approves it."""
    try:
        sales = await AuthService(db).register(
            register_data.phone, register_data.password, register_data.name
        )
    except CrmError as e:
        raise to_http_exception(e) from e

    return RegisterResponse(
        phone=sales.phone,
        approval_status=sales.approval_status,
        message="Registration submitted successfully. Your account is pending admin approval.",
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LoginResponse:
    """Login endpoint.

    Args:
        login_data: Login credentials
        db: Database session

    Returns:
        JWT access token
    """
    try:
        sales, access_token = await AuthService(db).authenticate(
            login_data.phone, login_data.password
        )
    except CrmError as e:
        raise to_http_exception(e) from e

    return LoginResponse(access_token=access_token, phone=sales.phone, role=sales.role)


@router.get("/me", response_model=SalesResponse)
async def get_current_sales_info(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
) -> SalesResponse:
    """Get the authenticated account."""
    return SalesResponse.model_validate(current_sales)
