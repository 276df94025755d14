"""Translate domain errors into HTTP responses."""

import logging

from fastapi import HTTPException, status

from crm.domain.errors import (
    AuthenticationError,
    ConflictError,
    CrmError,
    ForbiddenError,
    InvalidTransitionError,
    InvariantViolationError,
    NotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[CrmError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (InvalidTransitionError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_400_BAD_REQUEST),
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST),
]


def to_http_exception(error: CrmError) -> HTTPException:
    """Map a service-layer error to an HTTPException.

    Invariant violations (and anything unmapped) become a 500 with a generic
    message; they are logged at ERROR because they mean the stored data is
    inconsistent.
    """
    if isinstance(error, InvariantViolationError):
        logger.error(f"Invariant violation: {error}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal data consistency error",
        )

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            headers = None
            if status_code == status.HTTP_401_UNAUTHORIZED:
                headers = {"WWW-Authenticate": "Bearer"}
            return HTTPException(status_code=status_code, detail=str(error), headers=headers)

    logger.error(f"Unmapped service error {type(error).__name__}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )
