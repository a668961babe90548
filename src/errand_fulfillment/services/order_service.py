"""Order Service — intake and order-level lifecycle.

Coordinates between:
    - Intent rules (order structure, trial policy)
    - Stage plan (numbered stages persisted with the order)
    - Order state machine (transition guard)
    - Escrow ledger (hold on payment capture, refund on rejection)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from errand_fulfillment.config import get_settings
from errand_fulfillment.domain.enums import (
    TERMINAL_ORDER_STATUSES,
    EscrowStatus,
    Intent,
    OrderStatus,
    RecipientType,
    StageStatus,
    StageType,
)
from errand_fulfillment.domain.exceptions import (
    NonActionableIntentError,
    OrderNotFoundError,
    TrialConstraintError,
)
from errand_fulfillment.domain.intent_rules import (
    determine_order_type,
    get_try_constraints,
    is_actionable,
)
from errand_fulfillment.domain.stage_plan import build_stage_plan, validate_sequence
from errand_fulfillment.domain.state_machine import next_order_status
from errand_fulfillment.infrastructure.database.orm_models import Order, OrderStage
from errand_fulfillment.infrastructure.database.repositories import OrderRepository
from errand_fulfillment.logging_config import get_logger
from errand_fulfillment.services.escrow_ledger import EscrowLedger, LedgerResult
from errand_fulfillment.services.stage_service import StageService

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from errand_fulfillment.domain.stage_plan import StageSpec

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderTransition:
    """An order after an order-level event, plus what it moved from."""

    order: Order
    previous_status: str
    ledger: LedgerResult | None = None

    @property
    def changed(self) -> bool:
        return self.order.status != self.previous_status


class OrderService:
    """Manages order intake and the order-level lifecycle."""

    def __init__(self, session: AsyncSession, ledger: EscrowLedger | None = None) -> None:
        self._session = session
        self._order_repo = OrderRepository(session)
        self._stages = StageService(session)
        self._ledger = ledger or EscrowLedger(session)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def create_order(
        self,
        customer_id: str,
        intent: Intent,
        recipient_type: RecipientType = RecipientType.SELF,
        has_purchase: bool = False,
        stages: list[StageSpec] | None = None,
        pickup: StageSpec | None = None,
        dropoff: StageSpec | None = None,
        recurring: bool = False,
        purchase_price_cap: Decimal | None = None,
        currency: str | None = None,
        notes: str | None = None,
    ) -> Order:
        """Finalize a draft into a DRAFT order with its numbered stage plan.

        Raises:
            NonActionableIntentError: For DISCOVER and RATE.
            TrialConstraintError: If a TRY order breaks the trial policy.
            StagePlanError: If the stage plan is invalid for the order type.
        """
        if not is_actionable(intent):
            raise NonActionableIntentError(intent.value)

        has_purchase = has_purchase or any(
            spec.stage_type == StageType.PURCHASE for spec in stages or []
        )
        order_type = determine_order_type(
            intent, has_purchase, recipient_type, len(stages) if stages else 1
        )
        plan = build_stage_plan(order_type, stages, pickup, dropoff)
        validate_sequence([stage.sequence_no for stage in plan])

        experiment_flag = False
        if intent == Intent.TRY:
            self._check_trial(len(plan), recurring, purchase_price_cap)
            experiment_flag = get_try_constraints().experiment_flag

        order = Order(
            customer_id=customer_id,
            intent=intent.value,
            order_type=order_type.value,
            recipient_type=recipient_type.value,
            recurring=recurring,
            experiment_flag=experiment_flag,
            status=OrderStatus.DRAFT.value,
            escrow_status=EscrowStatus.NONE.value,
            currency=currency or get_settings().default_currency,
            purchase_price_cap=purchase_price_cap,
            notes=notes,
            stages=[
                OrderStage(
                    sequence_no=stage.sequence_no,
                    stage_type=stage.stage_type.value,
                    status=StageStatus.PENDING.value,
                    lat=stage.lat,
                    lng=stage.lng,
                    address_text=stage.address_text,
                    assigned_executor_id=stage.assigned_executor_id,
                )
                for stage in plan
            ],
        )
        order = await self._order_repo.create(order)

        logger.info(
            "order.created",
            order_id=str(order.id),
            intent=intent.value,
            order_type=order_type.value,
            stages=len(plan),
        )
        return order

    @staticmethod
    def _check_trial(
        stages_count: int,
        recurring: bool,
        purchase_price_cap: Decimal | None,
    ) -> None:
        constraints = get_try_constraints()
        if stages_count > constraints.stages_max:
            raise TrialConstraintError(
                f"TRY orders allow at most {constraints.stages_max} stages, got {stages_count}"
            )
        if recurring and not constraints.recurring:
            raise TrialConstraintError("TRY orders cannot be recurring")
        if constraints.require_price_cap and purchase_price_cap is None:
            raise TrialConstraintError("TRY orders require a purchase price cap")

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    async def request_payment(self, order_id: uuid.UUID) -> OrderTransition:
        order = await self._get_order_or_raise(order_id)
        previous = order.status
        new_status = next_order_status(previous, "request_payment")
        await self._order_repo.update_status(order, OrderStatus(new_status))
        logger.info("order.payment_requested", order_id=str(order_id))
        return OrderTransition(order, previous)

    async def record_payment_capture(
        self,
        order_id: uuid.UUID,
        amount: Decimal,
        currency: str | None = None,
    ) -> OrderTransition:
        """Hold the captured amount and move the order to PAID."""
        order = await self._get_order_or_raise(order_id)
        previous = order.status

        # Guard before writing to the ledger
        new_status = next_order_status(previous, "payment_captured")
        await self._ledger.hold(order.id, amount, currency)
        await self._order_repo.update_status(order, OrderStatus(new_status))

        logger.info(
            "order.payment_captured",
            order_id=str(order_id),
            amount=str(amount),
            escrow_status=order.escrow_status,
        )
        return OrderTransition(order, previous)

    # ------------------------------------------------------------------
    # Executor decision
    # ------------------------------------------------------------------

    async def accept_order(self, order_id: uuid.UUID) -> OrderTransition:
        """Accept every pending stage and start fulfillment.

        Raises:
            InvalidStateTransitionError: If the order is not PAID.
        """
        order = await self._get_order_or_raise(order_id)
        previous = order.status

        new_status = next_order_status(previous, "accept")
        accepted = await self._stages.accept_all(order.id)
        await self._order_repo.update_status(order, OrderStatus(new_status))

        logger.info("order.accepted", order_id=str(order_id), stages=len(accepted))
        return OrderTransition(order, previous)

    async def reject_order(self, order_id: uuid.UUID, reason: str | None = None) -> OrderTransition:
        """Fail every open stage, refund what is still held, and cancel."""
        order = await self._get_order_or_raise(order_id)
        previous = order.status

        new_status = next_order_status(previous, "cancel")
        failed = await self._stages.fail_open_stages(order.id)
        refund = await self._ledger.refund(order.id, reason or "Refund due to order rejection")
        await self._order_repo.update_status(order, OrderStatus(new_status))

        logger.info(
            "order.rejected",
            order_id=str(order_id),
            failed_stages=len(failed),
            refunded=refund.created,
        )
        return OrderTransition(order, previous, refund)

    async def refund_order(self, order_id: uuid.UUID, reason: str | None = None) -> OrderTransition:
        """Refund what is still held.

        An open order is canceled on the way, with its open stages failed, so
        no stage can complete afterwards without a matching release. On a
        closed order only the ledger is touched.
        """
        order = await self._get_order_or_raise(order_id)
        if order.status not in TERMINAL_ORDER_STATUSES:
            return await self.reject_order(order_id, reason or "Manual refund")

        refund = await self._ledger.refund(order.id, reason)
        return OrderTransition(order, order.status, refund)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID) -> Order:
        return await self._get_order_or_raise(order_id, for_update=False)

    async def list_orders(self, customer_id: str) -> list[Order]:
        return await self._order_repo.get_by_customer(customer_id)

    async def _get_order_or_raise(self, order_id: uuid.UUID, for_update: bool = True) -> Order:
        order = await self._order_repo.get_by_id(order_id, for_update=for_update)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order
