"""Inbound signal handlers — one unit of work per signal.

Each handler opens its own transaction, runs the service call, commits, and
only then dispatches the notifications the call produced. Transient storage
errors are retried with tenacity; domain errors are not.

Usage:
    from errand_fulfillment.orchestration import process_stage_event
    from errand_fulfillment.services.orchestrator import StageStatusChanged

    outcome = await process_stage_event(
        StageStatusChanged(order_id=order_id, stage_id=stage_id, new_status=StageStatus.COMPLETED),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from errand_fulfillment.config import get_settings
from errand_fulfillment.infrastructure.database.engine import session_scope
from errand_fulfillment.logging_config import get_logger
from errand_fulfillment.services.notifications import (
    InAppNotificationSink,
    NotificationSink,
    dispatch_notifications,
    order_status_message,
)
from errand_fulfillment.services.order_service import OrderService, OrderTransition
from errand_fulfillment.services.orchestrator import (
    FulfillmentOrchestrator,
    StageEventOutcome,
    StageStatusChanged,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Awaitable, Callable
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from tenacity import RetryCallState

    from errand_fulfillment.services.escrow_ledger import LedgerResult

logger = get_logger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "signal.retrying",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


async def _run_unit_of_work(
    work: Callable[[AsyncSession], Awaitable[Any]],
    session_factory: async_sessionmaker[AsyncSession] | None,
    max_attempts: int | None,
    max_wait: float | None,
) -> Any:
    """Run `work` in a fresh transaction, retrying on storage errors."""
    settings = get_settings()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts or settings.event_max_attempts),
        wait=wait_exponential(
            multiplier=0.5,
            max=settings.event_retry_max_wait_seconds if max_wait is None else max_wait,
        ),
        retry=retry_if_exception_type(SQLAlchemyError),
        before_sleep=_log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            async with session_scope(session_factory) as session:
                result = await work(session)
    return result


async def _notify_order_change(
    transition: OrderTransition,
    session_factory: async_sessionmaker[AsyncSession] | None,
    sink: NotificationSink | None,
) -> None:
    if not transition.changed:
        return
    order = transition.order
    await dispatch_notifications(
        sink or InAppNotificationSink(session_factory),
        [
            order_status_message(
                order.customer_id, str(order.id), order.status, transition.previous_status
            )
        ],
    )


async def process_stage_event(
    event: StageStatusChanged,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    sink: NotificationSink | None = None,
    max_attempts: int | None = None,
    max_wait: float | None = None,
) -> StageEventOutcome:
    """Handle one StageStatusChanged signal end to end."""

    async def work(session: AsyncSession) -> StageEventOutcome:
        return await FulfillmentOrchestrator(session).handle_stage_status_changed(event)

    outcome = await _run_unit_of_work(work, session_factory, max_attempts, max_wait)
    if outcome.notifications:
        await dispatch_notifications(
            sink or InAppNotificationSink(session_factory), outcome.notifications
        )
    return outcome


async def process_payment_captured(
    order_id: uuid.UUID,
    amount: Decimal,
    currency: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    sink: NotificationSink | None = None,
    max_attempts: int | None = None,
    max_wait: float | None = None,
) -> OrderTransition:
    """Handle a PaymentCaptured signal: hold funds and mark the order paid."""

    async def work(session: AsyncSession) -> OrderTransition:
        return await OrderService(session).record_payment_capture(order_id, amount, currency)

    transition = await _run_unit_of_work(work, session_factory, max_attempts, max_wait)
    await _notify_order_change(transition, session_factory, sink)
    return transition


async def process_order_decision(
    order_id: uuid.UUID,
    accept: bool,
    reason: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    sink: NotificationSink | None = None,
    max_attempts: int | None = None,
    max_wait: float | None = None,
) -> OrderTransition:
    """Handle an executor's OrderAccepted or OrderRejected signal."""

    async def work(session: AsyncSession) -> OrderTransition:
        service = OrderService(session)
        if accept:
            return await service.accept_order(order_id)
        return await service.reject_order(order_id, reason)

    transition = await _run_unit_of_work(work, session_factory, max_attempts, max_wait)
    await _notify_order_change(transition, session_factory, sink)
    return transition


async def process_refund(
    order_id: uuid.UUID,
    reason: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    sink: NotificationSink | None = None,
    max_attempts: int | None = None,
    max_wait: float | None = None,
) -> LedgerResult:
    """Refund whatever is still held, canceling the order if it is still open."""

    async def work(session: AsyncSession) -> OrderTransition:
        return await OrderService(session).refund_order(order_id, reason)

    transition = await _run_unit_of_work(work, session_factory, max_attempts, max_wait)
    await _notify_order_change(transition, session_factory, sink)
    return transition.ledger
