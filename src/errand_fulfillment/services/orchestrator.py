"""Fulfillment Orchestrator — reacts to stage status changes.

For every StageStatusChanged event, inside the caller's transaction:

    completed -> release the stage's escrow share, then complete the order
                 if every stage is done, otherwise keep it in_progress.
    failed    -> refund the remaining escrow, fail the other open stages,
                 and cancel the order.
    other     -> apply the stage transition and make sure the order is
                 in_progress.

Events for unknown or already-closed orders are logged no-ops. Duplicate
`completed` events re-attempt the release, which the ledger turns into a
no-op. Notifications are only built here; dispatch happens after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from errand_fulfillment.domain.enums import (
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    StageStatus,
)
from errand_fulfillment.domain.exceptions import InvalidStateTransitionError
from errand_fulfillment.domain.state_machine import next_order_status
from errand_fulfillment.infrastructure.database.repositories import OrderRepository
from errand_fulfillment.logging_config import get_logger
from errand_fulfillment.services.escrow_ledger import EscrowLedger
from errand_fulfillment.services.notifications import (
    NotificationMessage,
    order_status_message,
    stage_update_message,
)
from errand_fulfillment.services.stage_service import StageService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from errand_fulfillment.infrastructure.database.orm_models import Order, OrderStage

logger = get_logger(__name__)

# Orders that have not been paid yet cannot be fulfilled.
_PRE_FULFILLMENT_STATUSES = frozenset({OrderStatus.DRAFT, OrderStatus.PAYMENT_PENDING})


@dataclass(frozen=True)
class StageStatusChanged:
    """Inbound signal: an executor moved a stage to `new_status`."""

    order_id: uuid.UUID
    stage_id: uuid.UUID
    new_status: StageStatus
    executor_id: str | None = None


@dataclass
class StageEventOutcome:
    order_id: uuid.UUID
    stage_id: uuid.UUID
    new_status: StageStatus
    noop: bool = False
    reason: str | None = None
    order_status: str | None = None
    escrow_status: str | None = None
    released: bool = False
    refunded: bool = False
    notifications: list[NotificationMessage] = field(default_factory=list)


class FulfillmentOrchestrator:
    """Drives the order and the escrow ledger from stage events."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: EscrowLedger | None = None,
        stages: StageService | None = None,
    ) -> None:
        self._order_repo = OrderRepository(session)
        self._ledger = ledger or EscrowLedger(session)
        self._stages = stages or StageService(session)

    async def handle_stage_status_changed(self, event: StageStatusChanged) -> StageEventOutcome:
        log = logger.bind(
            order_id=str(event.order_id),
            stage_id=str(event.stage_id),
            new_status=event.new_status.value,
        )
        outcome = StageEventOutcome(event.order_id, event.stage_id, event.new_status)

        order = await self._order_repo.get_by_id(event.order_id, for_update=True)
        if order is None:
            log.warning("stage_event.unknown_order")
            outcome.noop, outcome.reason = True, "order_not_found"
            return outcome

        outcome.order_status = order.status
        outcome.escrow_status = order.escrow_status
        if order.status in TERMINAL_ORDER_STATUSES:
            log.info("stage_event.order_closed", order_status=order.status)
            outcome.noop, outcome.reason = True, "order_closed"
            return outcome

        if order.status in _PRE_FULFILLMENT_STATUSES:
            raise InvalidStateTransitionError(order.status, f"stage {event.new_status.value}")

        stage = await self._stages.get_stage_or_raise(order.id, event.stage_id)
        duplicate = stage.status == event.new_status.value
        if not duplicate:
            await self._stages.transition(stage, event.new_status)
            outcome.notifications.append(self._stage_message(order, stage, event.new_status))

        previous_order_status = order.status
        if event.new_status == StageStatus.COMPLETED:
            await self._on_stage_completed(order, stage, outcome)
        elif event.new_status == StageStatus.FAILED:
            await self._on_stage_failed(order, outcome)
        elif not duplicate:
            await self._ensure_in_progress(order)

        if order.status != previous_order_status:
            outcome.notifications.append(
                order_status_message(
                    order.customer_id, str(order.id), order.status, previous_order_status
                )
            )

        outcome.order_status = order.status
        outcome.escrow_status = order.escrow_status
        outcome.noop = duplicate and not outcome.released and not outcome.notifications
        if outcome.noop:
            outcome.reason = "duplicate_event"

        log.info(
            "stage_event.handled",
            noop=outcome.noop,
            order_status=outcome.order_status,
            escrow_status=outcome.escrow_status,
            released=outcome.released,
            refunded=outcome.refunded,
        )
        return outcome

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _on_stage_completed(
        self, order: Order, stage: OrderStage, outcome: StageEventOutcome
    ) -> None:
        result = await self._ledger.release_for_stage(order.id, stage.id)
        outcome.released = result.created

        await self._ensure_in_progress(order)
        if await self._stages.all_completed(order.id):
            await self._order_repo.update_status(
                order, OrderStatus(next_order_status(order.status, "complete"))
            )

    async def _on_stage_failed(self, order: Order, outcome: StageEventOutcome) -> None:
        result = await self._ledger.refund(order.id, "Refund due to stage failure")
        outcome.refunded = result.created

        await self._stages.fail_open_stages(order.id)
        await self._order_repo.update_status(
            order, OrderStatus(next_order_status(order.status, "cancel"))
        )

    async def _ensure_in_progress(self, order: Order) -> None:
        if order.status == OrderStatus.PAID.value:
            await self._order_repo.update_status(
                order, OrderStatus(next_order_status(order.status, "accept"))
            )

    @staticmethod
    def _stage_message(
        order: Order, stage: OrderStage, new_status: StageStatus
    ) -> NotificationMessage:
        return stage_update_message(
            customer_id=order.customer_id,
            order_id=str(order.id),
            stage_id=str(stage.id),
            stage_type=stage.stage_type,
            sequence_no=stage.sequence_no,
            new_status=new_status,
        )
