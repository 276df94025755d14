"""Customer service: creation, lookups, field updates and status changes."""

import dataclasses
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from crm.core.phone import normalize_phone
from crm.domain import access_policy
from crm.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    InvalidUpdateError,
    NotFoundError,
    ValidationFailedError,
)
from crm.domain.services.audit_service import AuditService
from crm.domain.status_transitions import (
    is_valid_transition,
    transition_error_message,
    valid_transitions,
)
from crm.persistence.database import transaction
from crm.persistence.models.audit_log import AuditAction
from crm.persistence.models.customer import (
    CertificateType,
    Customer,
    CustomerStatus,
    CustomerType,
    EducationLevel,
)
from crm.persistence.models.sales import Sales
from crm.persistence.models.status_history import StatusHistory
from crm.persistence.repositories.customer_repository import CustomerFilters, CustomerRepository
from crm.persistence.repositories.status_history_repository import StatusHistoryRepository

logger = logging.getLogger(__name__)

INITIAL_HISTORY_REASON = "Initial customer creation"

EDITABLE_FIELDS = frozenset({
    "name",
    "phone",
    "certificate_issuer",
    "business_requirements",
    "certificate_type",
    "age",
    "education",
    "gender",
    "address",
    "id_card",
    "customer_agent",
    "customer_type",
})

# Owned by the service itself; status goes through transition_status
PROTECTED_FIELDS = frozenset({
    "id",
    "sales_phone",
    "current_status",
    "certified_at",
    "version",
    "created_at",
    "updated_at",
    "deleted_at",
})

# Columns that are NOT NULL and have no "clear" meaning
_REQUIRED_FIELDS = frozenset({"name", "phone", "customer_type"})

_ENUM_FIELDS = {
    "certificate_type": CertificateType,
    "education": EducationLevel,
    "customer_type": CustomerType,
}


def _deny(actor: Sales, action: str, customer_id: Any = None) -> ForbiddenError:
    logger.info(
        "Policy rejection",
        extra={
            "actor_phone": getattr(actor, "phone", None),
            "action": action,
            "customer_id": str(customer_id) if customer_id else None,
        },
    )
    return ForbiddenError(f"Not allowed to {action}")


class CustomerService:
    """Service for customer management.

    Every operation takes the acting sales account explicitly and checks it
    against ``crm.domain.access_policy`` before touching data. Mutations run
    in a single transaction together with their history and audit rows.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize customer service."""
        self.session = session
        self.customer_repo = CustomerRepository(session)
        self.history_repo = StatusHistoryRepository(session)
        self.audit = AuditService(session)

    # Validation helpers

    def _check_keys(self, changes: dict[str, Any]) -> None:
        protected = sorted(set(changes) & PROTECTED_FIELDS)
        if protected:
            raise InvalidUpdateError(f"Fields cannot be changed here: {', '.join(protected)}")
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationFailedError(f"Unknown customer fields: {', '.join(unknown)}")

    def _clean(self, changes: dict[str, Any]) -> dict[str, Any]:
        """Normalise values; raises ValidationFailedError on bad input."""
        cleaned = dict(changes)
        for field in sorted(_REQUIRED_FIELDS & set(cleaned)):
            if cleaned[field] is None:
                raise ValidationFailedError(f"{field} cannot be empty")
        if "name" in cleaned:
            name = (cleaned["name"] or "").strip()
            if not name:
                raise ValidationFailedError("Customer name is required")
            cleaned["name"] = name
        if "phone" in cleaned:
            phone = normalize_phone(cleaned["phone"])
            if phone is None:
                raise ValidationFailedError(f"Invalid phone number: {cleaned['phone']!r}")
            cleaned["phone"] = phone
        if cleaned.get("age") is not None:
            try:
                cleaned["age"] = int(cleaned["age"])
            except (TypeError, ValueError) as e:
                raise ValidationFailedError(f"Invalid age: {cleaned['age']!r}") from e
            if not 0 < cleaned["age"] < 150:
                raise ValidationFailedError("Age must be between 1 and 149")
        for field, enum_cls in _ENUM_FIELDS.items():
            value = cleaned.get(field)
            if value is None or isinstance(value, enum_cls):
                continue
            try:
                cleaned[field] = enum_cls(value)
            except ValueError as e:
                raise ValidationFailedError(f"Invalid {field}: {value!r}") from e
        return cleaned

    async def _ensure_phone_free(self, phone: str, exclude_id: uuid.UUID | None = None) -> None:
        existing = await self.customer_repo.get_by_phone_including_deleted(phone)
        if existing is not None and existing.id != exclude_id:
            logger.warning("Duplicate customer phone", extra={"phone": phone})
            raise ConflictError(f"A customer with phone {phone} already exists")

    async def _flush(self, phone_changed: bool = False) -> None:
        try:
            await self.session.flush()
        except StaleDataError as e:
            logger.warning("Concurrent customer update detected")
            raise ConflictError("Customer was changed by another request; reload and retry") from e
        except IntegrityError as e:
            logger.warning(
                "Customer write violated a constraint", extra={"phone_changed": phone_changed}
            )
            if phone_changed:
                raise ConflictError("A customer with this phone already exists") from e
            raise ConflictError(
                "Customer could not be saved: a database constraint was violated"
            ) from e

    async def _load_readable(self, customer_id: uuid.UUID, actor: Sales) -> Customer:
        customer = await self.customer_repo.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        if not access_policy.can_read(actor, customer):
            raise _deny(actor, "read this customer", customer_id)
        return customer

    async def _lock_writable(self, customer_id: uuid.UUID, actor: Sales) -> Customer:
        customer = await self.customer_repo.get_for_update(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        if not access_policy.can_write(actor, customer):
            raise _deny(actor, "modify this customer", customer_id)
        return customer

    # Creation and lookups

    async def create_customer(
        self,
        attributes: dict[str, Any],
        actor: Sales,
        initial_status: CustomerStatus | str | None = None,
    ) -> Customer:
        """Create a customer owned by the actor.

        Args:
            attributes: Editable customer fields; ``name`` and ``phone`` are required
            actor: Sales account creating the customer
            initial_status: Starting status, NEW when omitted

        Returns:
            Created customer

        Raises:
            ForbiddenError: Actor may not create customers
            ConflictError: Phone already used by a live or deleted customer
        """
        if not access_policy.can_create(actor):
            raise _deny(actor, "create customers")

        self._check_keys(attributes)
        if not attributes.get("name") or not attributes.get("phone"):
            raise ValidationFailedError("Customer name and phone are required")
        data = self._clean(attributes)

        status = CustomerStatus.NEW
        if initial_status is not None:
            status = CustomerStatus.parse(initial_status)
            if status is None:
                raise ValidationFailedError(f"Unknown status: {initial_status!r}")

        data.setdefault("customer_type", CustomerType.NEW_CUSTOMER)

        async with transaction(self.session):
            await self._ensure_phone_free(data["phone"])
            customer = Customer(**data, current_status=status, sales_phone=actor.phone)
            if status == CustomerStatus.CERTIFIED:
                customer.certified_at = date.today()
            self.session.add(customer)
            await self._flush(phone_changed=True)
            await self.history_repo.append(
                customer_id=customer.id,
                from_status=None,
                to_status=status,
                reason=INITIAL_HISTORY_REASON,
                changed_by=actor.phone,
            )
            await self.audit.log_customer_action(AuditAction.CUSTOMER_CREATED, actor, customer)

        logger.info(
            "Customer created",
            extra={"customer_id": str(customer.id), "actor_phone": actor.phone},
        )
        return customer

    async def get_customer(self, customer_id: uuid.UUID, actor: Sales) -> Customer:
        """Get a live customer the actor may read."""
        return await self._load_readable(customer_id, actor)

    async def get_customer_including_deleted(
        self, customer_id: uuid.UUID, actor: Sales
    ) -> Customer:
        """Get a customer whether or not it is soft-deleted (admin only)."""
        if not access_policy.can_administer(actor):
            raise _deny(actor, "view deleted customers", customer_id)
        customer = await self.customer_repo.get_by_id_including_deleted(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    async def search_customers(
        self,
        actor: Sales,
        filters: CustomerFilters | None = None,
        page: int = 0,
        limit: int = 20,
    ) -> tuple[list[Customer], int]:
        """Search customers visible to the actor.

        Args:
            actor: Sales account searching
            filters: Search criteria
            page: Zero-based page number
            limit: Page size

        Returns:
            Tuple of (page of customers, total matching count)
        """
        filters = filters or CustomerFilters()
        if not access_policy.is_active(actor):
            raise _deny(actor, "list customers")
        if filters.include_deleted and not access_policy.can_administer(actor):
            raise _deny(actor, "list deleted customers")

        scope = access_policy.sales_phone_scope(actor)
        if scope is not None:
            filters = dataclasses.replace(filters, sales_phone=scope)

        return await self.customer_repo.search(
            filters, skip=max(page, 0) * limit, limit=limit
        )

    # Field updates

    async def update_customer(
        self, customer_id: uuid.UUID, changes: dict[str, Any], actor: Sales
    ) -> Customer:
        """Apply field changes to a customer.

        Status, owner, id and bookkeeping columns are refused. Applying the
        same changes twice leaves the row (and its version) as after the first.

        Raises:
            InvalidUpdateError: A protected field was supplied
            NotFoundError: Customer missing or soft-deleted
            ForbiddenError: Actor may not write this customer
            ConflictError: New phone taken, or a concurrent write won
        """
        async with transaction(self.session):
            # Authorize before validating the payload
            customer = await self._lock_writable(customer_id, actor)
            self._check_keys(changes)
            data = self._clean(changes)

            if "phone" in data and data["phone"] != customer.phone:
                await self._ensure_phone_free(data["phone"], exclude_id=customer.id)

            changed = [key for key, value in data.items() if getattr(customer, key) != value]
            for key in changed:
                setattr(customer, key, data[key])
            if changed:
                await self._flush(phone_changed="phone" in changed)

        if changed:
            logger.info(
                "Customer updated",
                extra={"customer_id": str(customer_id), "fields": changed},
            )
        return customer

    # Status transitions

    async def transition_status(
        self,
        customer_id: uuid.UUID,
        to_status: CustomerStatus | str,
        reason: str | None,
        actor: Sales,
    ) -> Customer:
        """Move a customer to a new status and record it in the history.

        The customer row is locked for the duration of the check and the
        write, and the status change and its history row commit together.

        Args:
            customer_id: Customer to change
            to_status: Target status
            reason: Free-text reason stored on the history row
            actor: Sales account making the change

        Returns:
            Updated customer

        Raises:
            NotFoundError: Customer missing or soft-deleted
            ForbiddenError: Actor may not write this customer
            InvalidTransitionError: Target is not reachable from the current status
            ConflictError: A concurrent write changed the row first
        """
        target = CustomerStatus.parse(to_status)

        async with transaction(self.session):
            customer = await self._lock_writable(customer_id, actor)
            current = customer.current_status

            if target is None or not is_valid_transition(current, target):
                message = transition_error_message(current, to_status)
                logger.info(
                    "Status transition rejected",
                    extra={
                        "customer_id": str(customer_id),
                        "from_status": str(current.value),
                        "to_status": str(to_status),
                    },
                )
                raise InvalidTransitionError(message, from_status=current, to_status=target)

            customer.current_status = target
            if target == CustomerStatus.CERTIFIED:
                customer.certified_at = date.today()
            await self._flush()

            await self.history_repo.append(
                customer_id=customer.id,
                from_status=current,
                to_status=target,
                reason=reason,
                changed_by=actor.phone,
            )

        logger.info(
            "Customer status changed",
            extra={
                "customer_id": str(customer_id),
                "from_status": current.value,
                "to_status": target.value,
                "actor_phone": actor.phone,
            },
        )
        return customer

    async def get_valid_transitions(
        self, customer_id: uuid.UUID, actor: Sales
    ) -> list[CustomerStatus]:
        """Statuses the customer can move to next, in enum order."""
        customer = await self._load_readable(customer_id, actor)
        allowed = valid_transitions(customer.current_status)
        return [status for status in CustomerStatus if status in allowed]

    async def can_transition_to(
        self, customer_id: uuid.UUID, to_status: CustomerStatus | str, actor: Sales
    ) -> bool:
        """Check a single target against the same table transition_status uses."""
        customer = await self._load_readable(customer_id, actor)
        return is_valid_transition(customer.current_status, to_status)

    async def get_status_history(
        self, customer_id: uuid.UUID, actor: Sales, page: int = 0, limit: int = 20
    ) -> tuple[list[StatusHistory], int]:
        """Status history for a customer, newest first."""
        await self._load_readable(customer_id, actor)
        items = await self.history_repo.list_for_customer(
            customer_id, skip=max(page, 0) * limit, limit=limit
        )
        total = await self.history_repo.count_for_customer(customer_id)
        return items, total

    # Soft delete and restore

    async def delete_customer(self, customer_id: uuid.UUID, actor: Sales) -> Customer:
        """Soft-delete a customer directly (admin only)."""
        if not access_policy.can_administer(actor):
            raise _deny(actor, "delete customers", customer_id)

        async with transaction(self.session):
            customer = await self.customer_repo.get_for_update(customer_id)
            if customer is None:
                raise NotFoundError(f"Customer {customer_id} not found")
            customer.soft_delete()
            await self._flush()
            await self.audit.log_customer_action(AuditAction.CUSTOMER_DELETED, actor, customer)

        logger.info("Customer soft-deleted", extra={"customer_id": str(customer_id)})
        return customer

    async def restore_customer(self, customer_id: uuid.UUID, actor: Sales) -> Customer:
        """Bring a soft-deleted customer back (admin only).

        Past delete requests are left exactly as they are.
        """
        if not access_policy.can_administer(actor):
            raise _deny(actor, "restore customers", customer_id)

        async with transaction(self.session):
            customer = await self.customer_repo.get_for_update(customer_id, include_deleted=True)
            if customer is None:
                raise NotFoundError(f"Customer {customer_id} not found")
            if not customer.is_deleted:
                raise ConflictError(f"Customer {customer_id} is not deleted")
            customer.restore()
            await self._flush()
            await self.audit.log_customer_action(AuditAction.CUSTOMER_RESTORED, actor, customer)

        logger.info("Customer restored", extra={"customer_id": str(customer_id)})
        return customer

    # Misc reads

    async def is_phone_available(
        self, phone: str, actor: Sales, exclude_customer_id: uuid.UUID | None = None
    ) -> bool:
        """True if no live or deleted customer other than the excluded one has the phone."""
        if not access_policy.is_active(actor):
            raise _deny(actor, "check phone numbers")
        normalized = normalize_phone(phone)
        if normalized is None:
            return False
        existing = await self.customer_repo.get_by_phone_including_deleted(normalized)
        return existing is None or existing.id == exclude_customer_id

    async def get_statistics(self, actor: Sales) -> dict[str, Any]:
        """Count live customers per status among those visible to the actor."""
        if not access_policy.is_active(actor):
            raise _deny(actor, "view statistics")
        counts = await self.customer_repo.count_by_status(
            sales_phone=access_policy.sales_phone_scope(actor)
        )
        return {
            "total": sum(counts.values()),
            "by_status": {status.value: count for status, count in counts.items()},
        }

    async def get_recently_updated(
        self, actor: Sales, days: int = 7, page: int = 0, limit: int = 20
    ) -> tuple[list[Customer], int]:
        """Live customers visible to the actor updated in the last ``days`` days, newest first."""
        if not access_policy.is_active(actor):
            raise _deny(actor, "list customers")
        since = datetime.utcnow() - timedelta(days=max(days, 0))
        return await self.customer_repo.list_updated_since(
            since,
            sales_phone=access_policy.sales_phone_scope(actor),
            skip=max(page, 0) * limit,
            limit=limit,
        )
