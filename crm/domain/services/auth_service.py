"""Sales account registration and login."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.auth import create_access_token
from crm.core.password import hash_password, verify_password
from crm.core.phone import normalize_phone
from crm.domain.errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    ValidationFailedError,
)
from crm.domain.services.audit_service import AuditService
from crm.persistence.database import transaction
from crm.persistence.models.audit_log import AuditAction
from crm.persistence.models.sales import ApprovalStatus, Sales, SalesRole
from crm.persistence.repositories.sales_repository import SalesRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """Service for sales account registration and authentication."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize auth service."""
        self.session = session
        self.sales_repo = SalesRepository(session)
        self.audit = AuditService(session)

    async def register(self, phone: str, password: str, name: str | None = None) -> Sales:
        """Register a basic sales account awaiting admin approval.

        Args:
            phone: Account phone, used as the login name
            password: Plain-text password
            name: Optional display name

        Returns:
            The PENDING account

        Raises:
            ValidationFailedError: Bad phone or short password
            ConflictError: Phone already registered
        """
        normalized = normalize_phone(phone)
        if normalized is None:
            raise ValidationFailedError(f"Invalid phone number: {phone!r}")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationFailedError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        async with transaction(self.session):
            if await self.sales_repo.get_by_phone(normalized) is not None:
                raise ConflictError("Phone number already exists")
            try:
                sales = await self.sales_repo.create(
                    phone=normalized,
                    name=(name or "").strip() or None,
                    hashed_password=hash_password(password),
                    role=SalesRole.SALES,
                    enabled=True,
                    approval_status=ApprovalStatus.PENDING,
                )
            except IntegrityError as e:
                raise ConflictError("Phone number already exists") from e
            await self.audit.log_user_action(AuditAction.USER_REGISTERED, None, sales)

        logger.info("Sales account registered", extra={"phone": normalized})
        return sales

    async def authenticate(self, phone: str, password: str) -> tuple[Sales, str]:
        """Check credentials and issue an access token.

        The login attempt is audited whether or not it succeeds.

        Returns:
            Tuple of (account, JWT access token)

        Raises:
            AuthenticationError: Unknown phone or wrong password
            ForbiddenError: Account pending, rejected or disabled
        """
        normalized = normalize_phone(phone) or (phone or "").strip()

        async with transaction(self.session):
            sales = await self.sales_repo.get_by_phone(normalized)
            credentials_ok = sales is not None and verify_password(
                password or "", sales.hashed_password
            )
            allowed = credentials_ok and sales.is_approved and sales.enabled
            await self.audit.log_login(normalized, success=allowed)

        if not credentials_ok:
            logger.info("Login failed", extra={"phone": normalized})
            raise AuthenticationError("Invalid credentials")
        if sales.approval_status == ApprovalStatus.PENDING:
            raise ForbiddenError("Account pending approval. Please contact admin.")
        if sales.approval_status == ApprovalStatus.REJECTED:
            raise ForbiddenError("Account access denied. Contact admin for more information.")
        if not sales.enabled:
            raise ForbiddenError("Account is disabled. Contact admin for more information.")

        token = create_access_token(subject=str(sales.id), role=sales.role.value)
        logger.info("Login succeeded", extra={"phone": normalized})
        return sales, token
