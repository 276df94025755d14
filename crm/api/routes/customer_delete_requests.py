"""Customer delete request API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.deps import get_current_sales, page_size
from crm.api.errors import to_http_exception
from crm.api.schemas.customer import StatisticsResponse
from crm.api.schemas.delete_request import (
    DeleteRequestApprove,
    DeleteRequestCreate,
    DeleteRequestListResponse,
    DeleteRequestReject,
    DeleteRequestResponse,
    PendingCountResponse,
)
from crm.domain.errors import CrmError
from crm.domain.services.delete_request_service import DeleteRequestService
from crm.persistence.database import get_db
from crm.persistence.models.customer_delete_request import CustomerDeleteRequest, DeleteRequestStatus
from crm.persistence.models.sales import Sales

router = APIRouter()


def _page(
    requests: list[CustomerDeleteRequest], total: int, page: int, limit: int
) -> DeleteRequestListResponse:
    return DeleteRequestListResponse(
        requests=[DeleteRequestResponse.model_validate(r) for r in requests],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=DeleteRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_delete_request(
    request_data: DeleteRequestCreate,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeleteRequestResponse:
    """Ask an admin to delete a customer."""
    try:
        request = await DeleteRequestService(db).create_delete_request(
            request_data.customer_id, current_sales, request_data.reason
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return DeleteRequestResponse.model_validate(request)


@router.get("", response_model=DeleteRequestListResponse)
async def list_delete_requests(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    request_status: DeleteRequestStatus | None = Query(None, alias="status"),
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> DeleteRequestListResponse:
    """List delete requests, optionally by state (admin only)."""
    limit = page_size(limit)
    try:
        requests, total = await DeleteRequestService(db).list_delete_requests(
            current_sales, status=request_status, page=page, limit=limit
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return _page(requests, total, page, limit)


@router.get("/pending", response_model=DeleteRequestListResponse)
async def list_pending(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> DeleteRequestListResponse:
    """Requests waiting for review (admin only)."""
    limit = page_size(limit)
    try:
        requests, total = await DeleteRequestService(db).list_pending(
            current_sales, page=page, limit=limit
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return _page(requests, total, page, limit)


@router.get("/pending/count", response_model=PendingCountResponse)
async def count_pending(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PendingCountResponse:
    try:
        count = await DeleteRequestService(db).count_pending(current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return PendingCountResponse(count=count)


@router.get("/mine", response_model=DeleteRequestListResponse)
async def list_my_requests(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> DeleteRequestListResponse:
    """Requests raised by the current account."""
    limit = page_size(limit)
    try:
        requests, total = await DeleteRequestService(db).list_by_requester(
            current_sales, page=page, limit=limit
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return _page(requests, total, page, limit)


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StatisticsResponse:
    try:
        stats = await DeleteRequestService(db).get_statistics(current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return StatisticsResponse(**stats)


@router.get("/{request_id}", response_model=DeleteRequestResponse)
async def get_delete_request(
    request_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeleteRequestResponse:
    try:
        request = await DeleteRequestService(db).get_delete_request(request_id, current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return DeleteRequestResponse.model_validate(request)


@router.patch("/{request_id}/approve", response_model=DeleteRequestResponse)
async def approve_delete_request(
    request_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    approval: DeleteRequestApprove | None = None,
) -> DeleteRequestResponse:
    """Approve a request; the customer is soft-deleted in the same transaction."""
    reason = approval.reason if approval else None
    try:
        request = await DeleteRequestService(db).approve_delete_request(
            request_id, current_sales, reason
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return DeleteRequestResponse.model_validate(request)


@router.patch("/{request_id}/reject", response_model=DeleteRequestResponse)
async def reject_delete_request(
    request_id: uuid.UUID,
    rejection: DeleteRequestReject,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeleteRequestResponse:
    """Reject a request; a rejection reason is required."""
    try:
        request = await DeleteRequestService(db).reject_delete_request(
            request_id, current_sales, rejection.rejection_reason
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return DeleteRequestResponse.model_validate(request)
