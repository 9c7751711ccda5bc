"""
Pytest fixtures for test database, client, payment provider and rate gates.

Each test gets a fresh file-backed SQLite database (aiosqlite) so that
concurrent sessions really contend for the write lock. Point
TEST_DATABASE_URL at a PostgreSQL database to run the same suite there.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./ticketgate-dev.db")
os.environ.setdefault("PAYMENT_PROVIDER", "mock")
os.environ.setdefault("MOCK_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("CORS_ALLOWED_ORIGINS", '["https://tickets.example.com"]')
os.environ.setdefault("ADMIN_PASSWORD", "letmein")
os.environ.setdefault("PUBLIC_BASE_URL", "http://test")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketgate.main import app
from ticketgate.api.deps import get_checkout_gate, get_status_gate
from ticketgate.core.config import get_settings
from ticketgate.db.base import Base
from ticketgate.db.session import get_db, make_engine, make_sessionmaker
from ticketgate.models import Event, Fulfillment, Ticket
from ticketgate.services.mockpay_provider import MockPayProvider
from ticketgate.services.provider_factory import get_payment_provider
from ticketgate.services.rate_gate import RateGate

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create tables on a fresh database, drop them afterwards."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'ticketgate-test.db'}"
    test_engine = make_engine(url)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mockpay() -> MockPayProvider:
    return MockPayProvider(get_settings())


@pytest.fixture
def checkout_gate() -> RateGate:
    return RateGate(1000, 300, name="checkout")


@pytest.fixture
def status_gate() -> RateGate:
    return RateGate(1000, 60, name="status")


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory,
    mockpay: MockPayProvider,
    checkout_gate: RateGate,
    status_gate: RateGate,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a session per request and test doubles for the provider and gates."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_provider] = lambda: mockpay
    app.dependency_overrides[get_checkout_gate] = lambda: checkout_gate
    app.dependency_overrides[get_status_gate] = lambda: status_gate

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_event(session_factory):
    """Factory inserting a committed event."""

    async def _make(
        ticket_limit: int = 100,
        tickets_sold: int = 0,
        is_active: bool = True,
        title: str = "Home Opener",
    ) -> Event:
        async with session_factory() as session:
            event = Event(
                title=title,
                date=datetime.now(timezone.utc) + timedelta(days=30),
                ticket_limit=ticket_limit,
                tickets_sold=tickets_sold,
                is_active=is_active,
            )
            session.add(event)
            await session.commit()
            await session.refresh(event)
            return event

    return _make


@pytest.fixture
def read_event(session_factory):
    """Fetch the committed state of an event."""

    async def _read(event_id: int) -> Event:
        async with session_factory() as session:
            return (await session.execute(select(Event).where(Event.id == event_id))).scalar_one()

    return _read


@pytest.fixture
def count_tickets(session_factory):
    async def _count(session_id: str | None = None) -> int:
        query = select(func.count(Ticket.id))
        if session_id is not None:
            query = query.where(Ticket.payment_session_id == session_id)
        async with session_factory() as session:
            return (await session.execute(query)).scalar_one()

    return _count


@pytest.fixture
def count_fulfillments(session_factory):
    async def _count(session_id: str) -> int:
        async with session_factory() as session:
            return (
                await session.execute(
                    select(func.count(Fulfillment.id)).where(Fulfillment.payment_session_id == session_id)
                )
            ).scalar_one()

    return _count
