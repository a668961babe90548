"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the session factory for signal handlers, and services.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends

from errand_fulfillment.infrastructure.database.engine import (
    get_async_session,
    get_session_factory,
)
from errand_fulfillment.services.analytics_service import IntentAnalyticsService
from errand_fulfillment.services.escrow_ledger import EscrowLedger
from errand_fulfillment.services.order_service import OrderService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    """Provide the session factory used by the transactional signal handlers."""
    return get_session_factory()


async def get_order_service(
    session: AsyncSession = Depends(get_db_session),
) -> OrderService:
    """Provide an OrderService bound to the current session."""
    return OrderService(session)


async def get_escrow_ledger(
    session: AsyncSession = Depends(get_db_session),
) -> EscrowLedger:
    """Provide an EscrowLedger bound to the current session."""
    return EscrowLedger(session)


def get_analytics_service() -> IntentAnalyticsService:
    return IntentAnalyticsService()
