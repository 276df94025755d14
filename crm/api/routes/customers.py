"""Customer API endpoints."""

import re
import uuid
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.api.deps import get_current_sales, page_size
from crm.api.errors import to_http_exception
from crm.api.schemas.customer import (
    CanTransitionResponse,
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    PhoneAvailabilityResponse,
    StatisticsResponse,
    StatusHistoryListResponse,
    StatusHistoryResponse,
    StatusTransitionRequest,
    ValidTransitionsResponse,
)
from crm.domain.errors import CrmError
from crm.domain.services.customer_service import CustomerService
from crm.persistence.database import get_db
from crm.persistence.models.customer import CertificateType, CustomerStatus, CustomerType
from crm.persistence.models.sales import Sales
from crm.persistence.repositories.customer_repository import CustomerFilters

router = APIRouter()

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Accept camelCase field names from clients (salesPhone -> sales_phone)."""
    return {_CAMEL_BOUNDARY.sub("_", key).lower(): value for key, value in data.items()}


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    q: str | None = Query(None, description="Name, phone or agent fragment"),
    phone: str | None = None,
    statuses: list[CustomerStatus] = Query(default=[], alias="status"),
    certificate_types: list[CertificateType] = Query(default=[], alias="certificate_type"),
    certificate_issuer: str | None = None,
    customer_agent: str | None = None,
    customer_type: CustomerType | None = None,
    certified_from: date | None = None,
    certified_to: date | None = None,
    include_deleted: bool = False,
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> CustomerListResponse:
    """Search customers visible to the current account.

    Basic sales accounts only ever see the customers they own.
    """
    limit = page_size(limit)
    filters = CustomerFilters(
        query=q,
        phone=phone,
        statuses=statuses,
        certificate_types=certificate_types,
        certificate_issuer=certificate_issuer,
        customer_agent=customer_agent,
        customer_type=customer_type,
        certified_from=certified_from,
        certified_to=certified_to,
        include_deleted=include_deleted,
    )
    try:
        customers, total = await CustomerService(db).search_customers(
            current_sales, filters, page=page, limit=limit
        )
    except CrmError as e:
        raise to_http_exception(e) from e

    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerResponse:
    """Create a customer owned by the current account."""
    attributes = customer_data.model_dump(exclude_unset=True, exclude={"current_status"})
    try:
        customer = await CustomerService(db).create_customer(
            attributes, current_sales, initial_status=customer_data.current_status
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerResponse.model_validate(customer)


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StatisticsResponse:
    """Customer counts per status."""
    try:
        stats = await CustomerService(db).get_statistics(current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return StatisticsResponse(**stats)


@router.get("/phone-available", response_model=PhoneAvailabilityResponse)
async def phone_available(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    phone: str = Query(..., min_length=1),
    exclude_customer_id: uuid.UUID | None = None,
) -> PhoneAvailabilityResponse:
    """Check whether a phone number is free for a new or edited customer."""
    try:
        available = await CustomerService(db).is_phone_available(
            phone, current_sales, exclude_customer_id
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return PhoneAvailabilityResponse(phone=phone, available=available)


@router.get("/recent", response_model=CustomerListResponse)
async def list_recent_customers(
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    days: int = Query(7, ge=0),
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> CustomerListResponse:
    """Customers updated in the last `days` days, most recent first."""
    limit = page_size(limit)
    try:
        customers, total = await CustomerService(db).get_recently_updated(
            current_sales, days=days, page=page, limit=limit
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerResponse:
    """Get a live customer."""
    try:
        customer = await CustomerService(db).get_customer(customer_id, current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}/including-deleted", response_model=CustomerResponse)
async def get_customer_including_deleted(
    customer_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerResponse:
    """Get a customer even if it is soft-deleted (admin only)."""
    try:
        customer = await CustomerService(db).get_customer_including_deleted(
            customer_id, current_sales
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerResponse.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: uuid.UUID,
    update_data: CustomerUpdate,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerResponse:
    """Update customer fields. Status changes go through /status-transition."""
    changes = _snake_keys(update_data.model_dump(exclude_unset=True))
    try:
        customer = await CustomerService(db).update_customer(
            customer_id, changes, current_sales
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Soft-delete a customer directly (admin only)."""
    try:
        await CustomerService(db).delete_customer(customer_id, current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e


@router.post("/{customer_id}/restore", response_model=CustomerResponse)
async def restore_customer(
    customer_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerResponse:
    """Restore a soft-deleted customer (admin only)."""
    try:
        customer = await CustomerService(db).restore_customer(customer_id, current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerResponse.model_validate(customer)


@router.post("/{customer_id}/status-transition", response_model=CustomerResponse)
async def transition_status(
    customer_id: uuid.UUID,
    transition: StatusTransitionRequest,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerResponse:
    """Move a customer to another status.

    Only targets listed by /valid-transitions are accepted; anything else
    is a 400.
    """
    try:
        customer = await CustomerService(db).transition_status(
            customer_id, transition.to_status, transition.reason, current_sales
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}/status-history", response_model=StatusHistoryListResponse)
async def get_status_history(
    customer_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> StatusHistoryListResponse:
    """Status history, newest first."""
    try:
        entries, total = await CustomerService(db).get_status_history(
            customer_id, current_sales, page=page, limit=page_size(limit)
        )
    except CrmError as e:
        raise to_http_exception(e) from e
    return StatusHistoryListResponse(
        history=[StatusHistoryResponse.model_validate(entry) for entry in entries],
        total=total,
    )


@router.get("/{customer_id}/valid-transitions", response_model=ValidTransitionsResponse)
async def get_valid_transitions(
    customer_id: uuid.UUID,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ValidTransitionsResponse:
    """Statuses the customer may move to next."""
    service = CustomerService(db)
    try:
        customer = await service.get_customer(customer_id, current_sales)
        targets = await service.get_valid_transitions(customer_id, current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return ValidTransitionsResponse(
        current_status=customer.current_status, valid_transitions=targets
    )


@router.get(
    "/{customer_id}/can-transition-to/{to_status}", response_model=CanTransitionResponse
)
async def can_transition_to(
    customer_id: uuid.UUID,
    to_status: str,
    current_sales: Annotated[Sales, Depends(get_current_sales)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CanTransitionResponse:
    """Check one target status. Unknown status names answer ``valid: false``."""
    service = CustomerService(db)
    try:
        customer = await service.get_customer(customer_id, current_sales)
        valid = await service.can_transition_to(customer_id, to_status, current_sales)
    except CrmError as e:
        raise to_http_exception(e) from e
    return CanTransitionResponse(
        current_status=customer.current_status, to_status=to_status, valid=valid
    )
