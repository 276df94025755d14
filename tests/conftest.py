"""Pytest configuration and fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crm.core.auth import create_access_token
from crm.core.password import hash_password
from crm.persistence.database import Base, get_db
from crm.persistence.models import *  # noqa: F401, F403
from crm.persistence.models.sales import ApprovalStatus, Sales, SalesRole

TEST_PASSWORD = "secret123"
# bcrypt is slow on purpose; hash once per test run
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
async def engine():
    """In-memory SQLite engine with the full schema."""
    # StaticPool keeps every session on the one in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a file-backed database.

    Each session gets its own connection, so concurrent sessions really
    contend for the database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def create_sales(
    session_factory,
    phone: str,
    role: SalesRole = SalesRole.SALES,
    approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
    enabled: bool = True,
) -> Sales:
    """Insert an account in its own session and return it detached."""
    async with session_factory() as session:
        sales = Sales(
            phone=phone,
            name=f"User {phone}",
            hashed_password=TEST_PASSWORD_HASH,
            role=role,
            enabled=enabled,
            approval_status=approval_status,
        )
        session.add(sales)
        await session.commit()
    return sales


@pytest.fixture
async def admin(session_factory) -> Sales:
    return await create_sales(session_factory, "13800000001", SalesRole.ADMIN)


@pytest.fixture
async def officer(session_factory) -> Sales:
    return await create_sales(session_factory, "13800000002", SalesRole.OFFICER)


@pytest.fixture
async def agent(session_factory) -> Sales:
    return await create_sales(session_factory, "13800000003", SalesRole.CUSTOMER_AGENT)


@pytest.fixture
async def sales_a(session_factory) -> Sales:
    return await create_sales(session_factory, "13800000004", SalesRole.SALES)


@pytest.fixture
async def sales_b(session_factory) -> Sales:
    return await create_sales(session_factory, "13800000005", SalesRole.SALES)


@pytest.fixture
async def pending_sales(session_factory) -> Sales:
    return await create_sales(
        session_factory, "13800000006", SalesRole.SALES, approval_status=ApprovalStatus.PENDING
    )


@pytest.fixture
def create_account():
    """Account factory usable with any session factory."""
    return create_sales


@pytest.fixture
def auth_headers():
    """Build bearer headers for an account."""

    def _headers(sales: Sales) -> dict[str, str]:
        token = create_access_token(subject=str(sales.id), role=sales.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app; every request gets its own session."""
    from crm.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
