"""Who may do what to which customer.

Plain functions over a ``Sales`` actor and a ``Customer``. They answer yes
or no; the services turn a no into ``ForbiddenError``.
"""

from crm.persistence.models.customer import Customer
from crm.persistence.models.sales import ApprovalStatus, Sales, SalesRole

FULL_VISIBILITY_ROLES = frozenset({SalesRole.ADMIN, SalesRole.OFFICER, SalesRole.CUSTOMER_AGENT})
CREATE_ROLES = frozenset({SalesRole.ADMIN, SalesRole.CUSTOMER_AGENT})
DELETE_REQUEST_ROLES = frozenset({SalesRole.ADMIN, SalesRole.CUSTOMER_AGENT})


def is_active(actor: Sales | None) -> bool:
    """Enabled and approved accounts only."""
    return (
        actor is not None
        and bool(actor.enabled)
        and actor.approval_status == ApprovalStatus.APPROVED
    )


def has_full_visibility(actor: Sales) -> bool:
    return is_active(actor) and actor.role in FULL_VISIBILITY_ROLES


def _owns(actor: Sales, customer: Customer) -> bool:
    return customer.sales_phone is not None and customer.sales_phone == actor.phone


def can_read(actor: Sales, customer: Customer) -> bool:
    if not is_active(actor):
        return False
    return actor.role in FULL_VISIBILITY_ROLES or _owns(actor, customer)


def can_write(actor: Sales, customer: Customer) -> bool:
    if not is_active(actor):
        return False
    return actor.role in FULL_VISIBILITY_ROLES or _owns(actor, customer)


def can_create(actor: Sales) -> bool:
    return is_active(actor) and actor.role in CREATE_ROLES


def can_request_delete(actor: Sales, customer: Customer) -> bool:
    return can_read(actor, customer) and actor.role in DELETE_REQUEST_ROLES


def can_approve_delete(actor: Sales) -> bool:
    return is_active(actor) and actor.role == SalesRole.ADMIN


def can_administer(actor: Sales) -> bool:
    """Direct delete, restore, deleted-row lookups and account approvals."""
    return is_active(actor) and actor.role == SalesRole.ADMIN


def sales_phone_scope(actor: Sales) -> str | None:
    """Owner filter for listings: None means every customer is visible."""
    if actor.role in FULL_VISIBILITY_ROLES:
        return None
    return actor.phone
