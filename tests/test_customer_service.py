"""Tests for CustomerService."""

import itertools
import uuid
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    InvalidUpdateError,
    NotFoundError,
    ValidationFailedError,
)
from crm.domain.services.customer_service import INITIAL_HISTORY_REASON, CustomerService
from crm.domain.status_transitions import VALID_TRANSITIONS
from crm.persistence.models.audit_log import AuditAction, AuditLog
from crm.persistence.models.customer import CustomerStatus, CustomerType
from crm.persistence.models.sales import SalesRole
from crm.persistence.repositories.customer_repository import CustomerFilters, CustomerRepository


async def new_customer(session, actor, phone="13700000000", owner=None, status=None, **extra):
    """Create a customer through the service, optionally handing it to another owner."""
    customer = await CustomerService(session).create_customer(
        {"name": "Zhang San", "phone": phone, **extra}, actor, initial_status=status
    )
    if owner is not None:
        customer.sales_phone = owner.phone
        await session.commit()
    return customer


# Creation

@pytest.mark.asyncio
async def test_create_customer_writes_initial_history_and_audit(db_session, agent):
    service = CustomerService(db_session)
    customer = await service.create_customer(
        {"name": " Zhang San ", "phone": "137-0000-0000"}, agent
    )

    assert customer.name == "Zhang San"
    assert customer.phone == "13700000000"
    assert customer.current_status == CustomerStatus.NEW
    assert customer.customer_type == CustomerType.NEW_CUSTOMER
    assert customer.sales_phone == agent.phone
    assert customer.version == 1

    history, total = await service.get_status_history(customer.id, agent)
    assert total == 1
    assert history[0].from_status is None
    assert history[0].to_status == CustomerStatus.NEW
    assert history[0].reason == INITIAL_HISTORY_REASON
    assert history[0].changed_by == agent.phone

    result = await db_session.execute(
        select(AuditLog).where(AuditLog.resource_id == str(customer.id))
    )
    entries = result.scalars().all()
    assert [e.action for e in entries] == [AuditAction.CUSTOMER_CREATED.value]


@pytest.mark.asyncio
async def test_create_customer_with_explicit_initial_status(db_session, admin):
    customer = await new_customer(db_session, admin, status=CustomerStatus.CERTIFIED)
    assert customer.current_status == CustomerStatus.CERTIFIED
    assert customer.certified_at == date.today()


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [SalesRole.OFFICER, SalesRole.SALES])
async def test_create_customer_requires_create_role(session_factory, create_account, db_session, role):
    actor = await create_account(session_factory, "13900000042", role)
    with pytest.raises(ForbiddenError):
        await new_customer(db_session, actor)


@pytest.mark.asyncio
async def test_create_customer_rejects_duplicate_phone_even_if_deleted(db_session, admin, agent):
    customer = await new_customer(db_session, agent)
    await CustomerService(db_session).delete_customer(customer.id, admin)

    with pytest.raises(ConflictError):
        await new_customer(db_session, agent, phone="137 0000 0000")


@pytest.mark.asyncio
async def test_create_customer_rejects_protected_and_invalid_fields(db_session, agent):
    service = CustomerService(db_session)
    with pytest.raises(InvalidUpdateError):
        await service.create_customer(
            {"name": "A", "phone": "13700000000", "sales_phone": "1"}, agent
        )
    with pytest.raises(ValidationFailedError):
        await service.create_customer({"name": "A", "phone": "+86 137"}, agent)
    with pytest.raises(ValidationFailedError):
        await service.create_customer(
            {"name": "A", "phone": "13700000000", "certificate_type": "NOPE"}, agent
        )


# Lookups

@pytest.mark.asyncio
async def test_get_customer_not_found(db_session, agent):
    with pytest.raises(NotFoundError):
        await CustomerService(db_session).get_customer(uuid.uuid4(), agent)


@pytest.mark.asyncio
async def test_basic_sales_cannot_read_other_owners_customer(db_session, agent, sales_a, sales_b):
    customer = await new_customer(db_session, agent, owner=sales_a)
    service = CustomerService(db_session)

    assert (await service.get_customer(customer.id, sales_a)).id == customer.id
    with pytest.raises(ForbiddenError):
        await service.get_customer(customer.id, sales_b)


@pytest.mark.asyncio
async def test_search_scopes_basic_sales_to_own_customers(db_session, agent, sales_a):
    await new_customer(db_session, agent, phone="13700000001", owner=sales_a)
    await new_customer(db_session, agent, phone="13700000002")
    service = CustomerService(db_session)

    own, own_total = await service.search_customers(sales_a)
    assert own_total == 1
    assert own[0].phone == "13700000001"

    # An explicit owner filter cannot widen the scope
    spoofed, _ = await service.search_customers(
        sales_a, CustomerFilters(sales_phone=agent.phone)
    )
    assert [c.phone for c in spoofed] == ["13700000001"]

    everything, total = await service.search_customers(agent)
    assert total == 2
    assert {c.phone for c in everything} == {"13700000001", "13700000002"}


@pytest.mark.asyncio
async def test_search_filters(db_session, agent):
    service = CustomerService(db_session)
    first = await new_customer(db_session, agent, phone="13700000001", customer_agent="Wang")
    await new_customer(db_session, agent, phone="13700000002")
    await service.transition_status(first.id, CustomerStatus.NOTIFIED, "called", agent)

    by_status, total = await service.search_customers(
        agent, CustomerFilters(statuses=[CustomerStatus.NOTIFIED])
    )
    assert total == 1
    assert by_status[0].phone == "13700000001"

    by_query, _ = await service.search_customers(agent, CustomerFilters(query="wang"))
    assert [c.phone for c in by_query] == ["13700000001"]

    page, total = await service.search_customers(agent, page=1, limit=1)
    assert total == 2
    assert len(page) == 1


@pytest.mark.asyncio
async def test_include_deleted_listing_is_admin_only(db_session, admin, agent):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)
    await service.delete_customer(customer.id, admin)

    live, live_total = await service.search_customers(admin)
    assert live_total == 0

    with_deleted, total = await service.search_customers(
        admin, CustomerFilters(include_deleted=True)
    )
    assert total == 1

    with pytest.raises(ForbiddenError):
        await service.search_customers(agent, CustomerFilters(include_deleted=True))


# Field updates

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field,value",
    [
        ("current_status", "CERTIFIED"),
        ("sales_phone", "13999999999"),
        ("id", "00000000-0000-0000-0000-000000000000"),
        ("version", 7),
        ("deleted_at", None),
    ],
)
async def test_update_rejects_protected_fields(db_session, agent, field, value):
    customer = await new_customer(db_session, agent)
    customer_id = customer.id
    service = CustomerService(db_session)

    with pytest.raises(InvalidUpdateError):
        await service.update_customer(customer_id, {field: value}, agent)

    reloaded = await service.get_customer(customer_id, agent)
    assert reloaded.current_status == CustomerStatus.NEW
    assert reloaded.sales_phone == agent.phone


@pytest.mark.asyncio
async def test_update_is_idempotent(db_session, agent):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)
    changes = {"name": "Zhang Wei", "age": 35, "certificate_type": "N1_FORKLIFT"}

    first = await service.update_customer(customer.id, changes, agent)
    version_after_first = first.version
    second = await service.update_customer(customer.id, changes, agent)

    assert second.name == "Zhang Wei"
    assert second.age == 35
    assert second.version == version_after_first


@pytest.mark.asyncio
async def test_update_phone_must_stay_unique(db_session, agent):
    await new_customer(db_session, agent, phone="13700000001")
    other = await new_customer(db_session, agent, phone="13700000002")

    with pytest.raises(ConflictError):
        await CustomerService(db_session).update_customer(
            other.id, {"phone": "13700000001"}, agent
        )


@pytest.mark.asyncio
async def test_basic_sales_cannot_update_other_owners_customer(db_session, agent, sales_b):
    customer = await new_customer(db_session, agent)
    with pytest.raises(ForbiddenError):
        await CustomerService(db_session).update_customer(customer.id, {"name": "X"}, sales_b)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes",
    [
        {"sales_phone": "13800000005"},
        {"current_status": "CERTIFIED"},
        {"age": 500},
        {"phone": "bad"},
        {"customer_type": None},
        {"no_such_field": 1},
    ],
)
async def test_non_owner_update_is_forbidden_whatever_the_payload(
    db_session, agent, sales_b, changes
):
    customer = await new_customer(db_session, agent)
    customer_id = customer.id
    with pytest.raises(ForbiddenError):
        await CustomerService(db_session).update_customer(customer_id, changes, sales_b)


@pytest.mark.asyncio
async def test_required_fields_cannot_be_cleared(db_session, agent):
    customer = await new_customer(db_session, agent)
    customer_id = customer.id
    service = CustomerService(db_session)

    for field in ("customer_type", "name", "phone"):
        with pytest.raises(ValidationFailedError):
            await service.update_customer(customer_id, {field: None}, agent)

    reloaded = await CustomerRepository(db_session).get_by_id(customer_id)
    assert reloaded.customer_type == CustomerType.NEW_CUSTOMER


@pytest.mark.asyncio
async def test_constraint_failure_without_phone_change_is_not_reported_as_phone_conflict(
    db_session, agent, monkeypatch
):
    customer = await new_customer(db_session, agent)
    customer_id = customer.id

    async def failing_flush(self, *args, **kwargs):
        raise IntegrityError("UPDATE customers", {}, Exception("NOT NULL constraint failed"))

    monkeypatch.setattr(AsyncSession, "flush", failing_flush)
    with pytest.raises(ConflictError) as exc_info:
        await CustomerService(db_session).update_customer(customer_id, {"name": "Li Si"}, agent)

    assert "phone" not in str(exc_info.value)


# Status transitions

@pytest.mark.asyncio
async def test_transition_round_trip(db_session, agent):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)

    updated = await service.transition_status(
        customer.id, CustomerStatus.NOTIFIED, "called", agent
    )
    assert updated.current_status == CustomerStatus.NOTIFIED
    assert updated.version == 2

    reloaded = await CustomerRepository(db_session).get_by_id(customer.id)
    assert reloaded.current_status == CustomerStatus.NOTIFIED

    history, total = await service.get_status_history(customer.id, agent)
    assert total == 2
    latest = history[0]
    assert latest.from_status == CustomerStatus.NEW
    assert latest.to_status == CustomerStatus.NOTIFIED
    assert latest.reason == "called"
    assert latest.changed_by == agent.phone
    assert history[1].from_status is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "from_status,to_status",
    list(itertools.product(list(CustomerStatus), list(CustomerStatus))),
)
async def test_transition_succeeds_exactly_on_table_edges(db_session, admin, from_status, to_status):
    customer = await new_customer(db_session, admin, status=from_status)
    customer_id = customer.id
    service = CustomerService(db_session)

    if to_status in VALID_TRANSITIONS[from_status]:
        updated = await service.transition_status(customer_id, to_status, "move", admin)
        assert updated.current_status == to_status
        _, total = await service.get_status_history(customer_id, admin)
        assert total == 2
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.transition_status(customer_id, to_status, "move", admin)
        assert exc_info.value.from_status == from_status
        reloaded = await service.get_customer(customer_id, admin)
        assert reloaded.current_status == from_status
        _, total = await service.get_status_history(customer_id, admin)
        assert total == 1


@pytest.mark.asyncio
async def test_transition_to_certified_stamps_date(db_session, agent):
    customer = await new_customer(db_session, agent)
    updated = await CustomerService(db_session).transition_status(
        customer.id, "CERTIFIED", None, agent
    )
    assert updated.certified_at == date.today()


@pytest.mark.asyncio
async def test_transition_unknown_target_is_invalid(db_session, agent):
    customer = await new_customer(db_session, agent)
    with pytest.raises(InvalidTransitionError):
        await CustomerService(db_session).transition_status(
            customer.id, "CONTACTED", "called", agent
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("to_status", [CustomerStatus.NOTIFIED, CustomerStatus.NEW])
async def test_basic_sales_transition_on_foreign_customer_is_forbidden(
    db_session, agent, sales_a, sales_b, to_status
):
    customer = await new_customer(db_session, agent, owner=sales_a)
    customer_id = customer.id
    service = CustomerService(db_session)

    with pytest.raises(ForbiddenError):
        await service.transition_status(customer_id, to_status, "x", sales_b)

    # Owner may move their own customer
    updated = await service.transition_status(customer_id, CustomerStatus.NOTIFIED, "x", sales_a)
    assert updated.current_status == CustomerStatus.NOTIFIED


@pytest.mark.asyncio
async def test_transition_on_deleted_customer_is_not_found(db_session, admin, agent):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)
    await service.delete_customer(customer.id, admin)

    with pytest.raises(NotFoundError):
        await service.transition_status(customer.id, CustomerStatus.NOTIFIED, "x", agent)


@pytest.mark.asyncio
async def test_valid_transitions_query_matches_table_and_is_stable(db_session, agent):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)

    first = await service.get_valid_transitions(customer.id, agent)
    second = await service.get_valid_transitions(customer.id, agent)
    assert first == second
    assert set(first) == VALID_TRANSITIONS[CustomerStatus.NEW]

    assert await service.can_transition_to(customer.id, "SUBMITTED", agent)
    assert not await service.can_transition_to(customer.id, "NEW", agent)
    assert not await service.can_transition_to(customer.id, "CONTACTED", agent)


@pytest.mark.asyncio
async def test_stale_write_surfaces_as_conflict(file_session_factory, create_account):
    agent = await create_account(file_session_factory, "13800000003", SalesRole.CUSTOMER_AGENT)

    async with file_session_factory() as session:
        customer = await new_customer(session, agent)
        customer_id = customer.id

    async with file_session_factory() as stale_session, file_session_factory() as session:
        stale = await CustomerRepository(stale_session).get_by_id(customer_id)
        assert stale.version == 1

        await CustomerService(session).transition_status(
            customer_id, CustomerStatus.NOTIFIED, "called", agent
        )

        stale.name = "Overwritten"
        with pytest.raises(ConflictError):
            await CustomerService(stale_session)._flush()


# Soft delete and restore

@pytest.mark.asyncio
async def test_delete_and_restore(db_session, admin, agent):
    customer = await new_customer(db_session, agent)
    customer_id = customer.id
    service = CustomerService(db_session)

    deleted = await service.delete_customer(customer_id, admin)
    assert deleted.deleted_at is not None

    with pytest.raises(NotFoundError):
        await service.get_customer(customer_id, agent)
    hidden = await service.get_customer_including_deleted(customer_id, admin)
    assert hidden.is_deleted

    restored = await service.restore_customer(customer_id, admin)
    assert restored.deleted_at is None
    assert (await service.get_customer(customer_id, agent)).id == customer_id

    with pytest.raises(ConflictError):
        await service.restore_customer(customer_id, admin)


@pytest.mark.asyncio
async def test_delete_restore_and_deleted_lookup_are_admin_only(db_session, agent, officer):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)

    for actor in (agent, officer):
        with pytest.raises(ForbiddenError):
            await service.delete_customer(customer.id, actor)
        with pytest.raises(ForbiddenError):
            await service.restore_customer(customer.id, actor)
        with pytest.raises(ForbiddenError):
            await service.get_customer_including_deleted(customer.id, actor)


# Misc reads

@pytest.mark.asyncio
async def test_is_phone_available(db_session, agent):
    customer = await new_customer(db_session, agent)
    service = CustomerService(db_session)

    assert not await service.is_phone_available("13700000000", agent)
    assert await service.is_phone_available("13700000000", agent, exclude_customer_id=customer.id)
    assert await service.is_phone_available("13700009999", agent)
    assert not await service.is_phone_available("not-a-phone", agent)


@pytest.mark.asyncio
async def test_phone_check_requires_active_account(db_session, pending_sales):
    with pytest.raises(ForbiddenError):
        await CustomerService(db_session).is_phone_available("13700000000", pending_sales)


@pytest.mark.asyncio
async def test_recently_updated_lists_newest_first_within_scope(db_session, agent, sales_a):
    old = await new_customer(db_session, agent, phone="13700000001")
    old_id = old.id
    old.updated_at = datetime.utcnow() - timedelta(days=30)
    await db_session.commit()
    mine = await new_customer(db_session, agent, phone="13700000002", owner=sales_a)
    latest = await new_customer(db_session, agent, phone="13700000003")
    service = CustomerService(db_session)

    customers, total = await service.get_recently_updated(agent, days=7)
    assert total == 2
    assert [c.id for c in customers] == [latest.id, mine.id]
    assert old_id not in [c.id for c in customers]

    customers, total = await service.get_recently_updated(agent, days=60)
    assert total == 3

    customers, total = await service.get_recently_updated(sales_a, days=7)
    assert [c.id for c in customers] == [mine.id]


@pytest.mark.asyncio
async def test_statistics_respect_visibility(db_session, agent, sales_a):
    first = await new_customer(db_session, agent, phone="13700000001", owner=sales_a)
    await new_customer(db_session, agent, phone="13700000002")
    service = CustomerService(db_session)
    await service.transition_status(first.id, CustomerStatus.SUBMITTED, None, agent)

    all_stats = await service.get_statistics(agent)
    assert all_stats["total"] == 2
    assert all_stats["by_status"]["NEW"] == 1
    assert all_stats["by_status"]["SUBMITTED"] == 1

    own_stats = await service.get_statistics(sales_a)
    assert own_stats["total"] == 1
    assert own_stats["by_status"]["SUBMITTED"] == 1
    assert own_stats["by_status"]["NEW"] == 0
