"""Shared test fixtures for the errand fulfillment test suite.

Provides:
    - An in-memory SQLite database (aiosqlite) with the full schema
    - Session and session-factory fixtures
    - Factory functions for creating orders with stages and escrow holds
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from errand_fulfillment.domain.enums import (
    Intent,
    OrderStatus,
    OrderStructureType,
    StageStatus,
    StageType,
)
from errand_fulfillment.infrastructure.database.orm_models import Base, Order, OrderStage
from errand_fulfillment.services.escrow_ledger import EscrowLedger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A fresh in-memory database per test, shared by every session."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def sink() -> AsyncMock:
    """A notification sink that records calls."""
    return AsyncMock()


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def customer_id() -> str:
    return "customer-001"


@pytest.fixture
def sample_order_id() -> uuid.UUID:
    """Return a deterministic UUID for testing."""
    return uuid.UUID("12345678-1234-5678-1234-567812345678")


async def _create_order(
    session: AsyncSession,
    stage_count: int = 3,
    status: OrderStatus = OrderStatus.PAID,
    held: Decimal | None = Decimal("300.00"),
    stage_status: StageStatus = StageStatus.PENDING,
    customer_id: str = "customer-001",
) -> Order:
    """Insert an order with `stage_count` stages and optionally hold funds on it."""
    order = Order(
        customer_id=customer_id,
        intent=Intent.COORDINATE.value,
        order_type=OrderStructureType.CHAIN.value,
        status=status.value,
        stages=[
            OrderStage(
                sequence_no=n,
                stage_type=StageType.PICKUP.value if n < stage_count else StageType.DROPOFF.value,
                status=stage_status.value,
            )
            for n in range(1, stage_count + 1)
        ],
    )
    session.add(order)
    await session.flush()
    if held is not None:
        await EscrowLedger(session).hold(order.id, held)
    return order


@pytest.fixture
def make_order(session: AsyncSession) -> Callable[..., Awaitable[Order]]:
    """Create an order inside the test's own (uncommitted) session."""

    async def factory(**kwargs) -> Order:
        return await _create_order(session, **kwargs)

    return factory


@pytest.fixture
def order_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Order]]:
    """Create and commit an order in its own session."""

    async def factory(**kwargs) -> Order:
        async with session_factory() as session:
            order = await _create_order(session, **kwargs)
            await session.commit()
            return order

    return factory
