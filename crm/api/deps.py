"""FastAPI dependencies for authentication."""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.auth import decode_access_token
from crm.domain import access_policy
from crm.persistence.database import get_db
from crm.persistence.models.sales import Sales
from crm.persistence.repositories.sales_repository import SalesRepository
from crm.settings import settings

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_sales(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Sales:
    """Get the authenticated sales account from the bearer token.

    The account is passed on explicitly to every service call; whether it
    may act at all (approved, enabled) is decided by the access policy.

    Raises:
        HTTPException: If the token is invalid or the account is gone
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication credentials")

    try:
        sales_id = uuid.UUID(str(payload.get("sub")))
    except (ValueError, TypeError):
        raise _unauthorized("Invalid token payload")

    sales = await SalesRepository(db).get_by_id(sales_id)
    if sales is None:
        raise _unauthorized("User not found")
    return sales


async def require_admin(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
) -> Sales:
    """Require an active ADMIN account."""
    if not access_policy.can_administer(current_sales):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_sales


def page_size(limit: int) -> int:
    """Clamp a requested page size to the configured maximum."""
    return max(1, min(limit, settings.max_page_size))
