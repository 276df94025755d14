"""Admin endpoints for reviewing sales account registrations."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.deps import page_size, require_admin
from crm.api.errors import to_http_exception
from crm.api.schemas.customer import StatisticsResponse
from crm.api.schemas.sales import (
    ApproveUserRequest,
    AuditEntryResponse,
    RejectUserRequest,
    SalesListResponse,
    SalesResponse,
    UserActionRequest,
)
from crm.domain.errors import CrmError
from crm.domain.services.user_approval_service import UserApprovalService
from crm.persistence.database import get_db
from crm.persistence.models.sales import ApprovalStatus, Sales

router = APIRouter()


@router.get("", response_model=SalesListResponse)
async def list_users(
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    approval_status: ApprovalStatus = Query(ApprovalStatus.PENDING, alias="status"),
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> SalesListResponse:
    """List accounts in one approval state (PENDING by default)."""
    limit = page_size(limit)
    try:
        users, total = await UserApprovalService(db).list_by_status(
            admin, approval_status, page=page, limit=limit
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return SalesListResponse(
        users=[SalesResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StatisticsResponse:
    try:
        stats = await UserApprovalService(db).get_statistics(admin)
    except CrmError as e:
        raise to_http_exception(e) from e
    return StatisticsResponse(**stats)


@router.post("/{phone}/approve", response_model=SalesResponse)
async def approve_user(
    phone: str,
    approval: ApproveUserRequest,
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SalesResponse:
    """Approve a registration, optionally assigning a role other than ADMIN."""
    try:
        sales = await UserApprovalService(db).approve(
            phone, admin, approval.reason, role=approval.role
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return SalesResponse.model_validate(sales)


@router.post("/{phone}/reject", response_model=SalesResponse)
async def reject_user(
    phone: str,
    rejection: RejectUserRequest,
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SalesResponse:
    try:
        sales = await UserApprovalService(db).reject(phone, admin, rejection.reason)
    except CrmError as e:
        raise to_http_exception(e) from e
    return SalesResponse.model_validate(sales)


@router.post("/{phone}/reset", response_model=SalesResponse)
async def reset_user(
    phone: str,
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    action: UserActionRequest | None = None,
) -> SalesResponse:
    """Put an account back to PENDING."""
    try:
        sales = await UserApprovalService(db).reset(
            phone, admin, action.reason if action else None
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return SalesResponse.model_validate(sales)


@router.post("/{phone}/enable", response_model=SalesResponse)
async def enable_user(
    phone: str,
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    action: UserActionRequest | None = None,
) -> SalesResponse:
    try:
        sales = await UserApprovalService(db).set_enabled(
            phone, admin, True, action.reason if action else None
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return SalesResponse.model_validate(sales)


@router.post("/{phone}/disable", response_model=SalesResponse)
async def disable_user(
    phone: str,
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    action: UserActionRequest | None = None,
) -> SalesResponse:
    try:
        sales = await UserApprovalService(db).set_enabled(
            phone, admin, False, action.reason if action else None
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return SalesResponse.model_validate(sales)


@router.get("/{phone}/history", response_model=list[AuditEntryResponse])
async def get_user_history(
    phone: str,
    admin: Annotated[Sales, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[AuditEntryResponse]:
    """Registration and review history of an account, newest first."""
    try:
        entries = await UserApprovalService(db).history(phone, admin)
    except CrmError as e:
        raise to_http_exception(e) from e
    return [AuditEntryResponse.model_validate(entry) for entry in entries]
