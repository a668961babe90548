"""Escrow Ledger — hold, per-stage release, and whole-order refund.

The ledger is an append-only list of EscrowTransaction rows. Every mutation
locks the order row, re-reads the ledger sums, checks the money invariant
(held >= released + refunded) before writing, and then recomputes the
order's escrow_status from the fresh sums.

Idempotent no-ops (stage already released, nothing left to release or
refund) return a LedgerResult with created=False instead of raising, so
at-least-once delivery of upstream events is safe.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from errand_fulfillment.config import get_settings
from errand_fulfillment.domain.enums import EscrowStatus, TransactionType
from errand_fulfillment.domain.escrow_math import (
    ZERO,
    EscrowBalance,
    derive_escrow_status,
    stage_release_amount,
)
from errand_fulfillment.domain.exceptions import (
    EscrowInvariantError,
    InvalidAmountError,
    OrderNotFoundError,
    StageNotFoundError,
)
from errand_fulfillment.infrastructure.database.repositories import (
    EscrowTransactionRepository,
    OrderRepository,
    StageRepository,
)
from errand_fulfillment.logging_config import get_alert_logger, get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from errand_fulfillment.infrastructure.database.orm_models import (
        EscrowTransaction,
        Order,
    )

logger = get_logger(__name__)
alerts = get_alert_logger()


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a release or refund call.

    Attributes:
        transaction: The ledger row written, or the existing one for a
            duplicate release, or None when there was nothing to move.
        created: True only when this call appended a row.
        escrow_status: The order's escrow status after the call.
    """

    transaction: EscrowTransaction | None
    created: bool
    escrow_status: EscrowStatus

    @property
    def noop(self) -> bool:
        return not self.created


class EscrowLedger:
    """Manages the escrow transactions of orders."""

    def __init__(
        self,
        session: AsyncSession,
        quantum: Decimal | None = None,
    ) -> None:
        settings = get_settings()
        self._session = session
        self._order_repo = OrderRepository(session)
        self._stage_repo = StageRepository(session)
        self._txn_repo = EscrowTransactionRepository(session)
        self._quantum = quantum if quantum is not None else settings.escrow_quantum

    # ------------------------------------------------------------------
    # Hold
    # ------------------------------------------------------------------

    async def hold(
        self,
        order_id: uuid.UUID,
        amount: Decimal,
        currency: str | None = None,
    ) -> EscrowTransaction:
        """Record captured payment as held funds for the order."""
        amount = Decimal(amount)
        if amount < ZERO:
            raise InvalidAmountError(amount)
        if amount != amount.quantize(self._quantum):
            raise InvalidAmountError(amount, f"is finer than the currency quantum {self._quantum}")

        order = await self._get_order_or_raise(order_id)
        txn = await self._txn_repo.append(
            order_id=order.id,
            transaction_type=TransactionType.HOLD,
            amount=amount,
            currency=currency or order.currency,
            notes="Initial escrow hold on payment",
        )
        escrow_status = await self._recompute_status(order)

        logger.info(
            "escrow.hold_recorded",
            order_id=str(order_id),
            amount=str(amount),
            currency=txn.currency,
            escrow_status=escrow_status.value,
        )
        return txn

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    async def release_for_stage(
        self,
        order_id: uuid.UUID,
        stage_id: uuid.UUID,
    ) -> LedgerResult:
        """Release the stage's equal share of held funds, at most once per stage."""
        order = await self._get_order_or_raise(order_id)
        stage = await self._stage_repo.get_by_id(stage_id)
        if stage is None or stage.order_id != order.id:
            raise StageNotFoundError(str(order_id), str(stage_id))

        existing = await self._txn_repo.get_release(order.id, stage.id)
        if existing is not None:
            logger.info(
                "escrow.release_duplicate",
                order_id=str(order_id),
                stage_id=str(stage_id),
            )
            return LedgerResult(existing, False, EscrowStatus(order.escrow_status))

        balance = await self.get_balance(order.id)
        if balance.remaining <= ZERO:
            logger.info(
                "escrow.nothing_to_release",
                order_id=str(order_id),
                stage_id=str(stage_id),
            )
            return LedgerResult(None, False, EscrowStatus(order.escrow_status))

        total_stages = await self._stage_repo.count_by_order(order.id)
        releases_so_far = await self._txn_repo.count_releases(order.id)
        amount = stage_release_amount(balance, total_stages, releases_so_far, self._quantum)
        self._guard(order, balance, amount)

        txn, created = await self._txn_repo.insert_release_if_absent(
            order_id=order.id,
            stage_id=stage.id,
            amount=amount,
            currency=order.currency,
            notes=f"Auto-release for stage {stage.sequence_no} completion",
        )
        escrow_status = await self._recompute_status(order)

        logger.info(
            "escrow.released" if created else "escrow.release_duplicate",
            order_id=str(order_id),
            stage_id=str(stage_id),
            amount=str(txn.amount),
            escrow_status=escrow_status.value,
        )
        return LedgerResult(txn, created, escrow_status)

    # ------------------------------------------------------------------
    # Refund
    # ------------------------------------------------------------------

    async def refund(self, order_id: uuid.UUID, reason: str | None = None) -> LedgerResult:
        """Refund whatever is still held (held - released - refunded)."""
        order = await self._get_order_or_raise(order_id)
        balance = await self.get_balance(order.id)
        amount = balance.remaining

        if amount <= ZERO:
            logger.info("escrow.nothing_to_refund", order_id=str(order_id))
            return LedgerResult(None, False, EscrowStatus(order.escrow_status))

        self._guard(order, balance, amount)
        txn = await self._txn_repo.append(
            order_id=order.id,
            transaction_type=TransactionType.REFUND,
            amount=amount,
            currency=order.currency,
            notes=reason or "Refund due to order cancellation/failure",
        )
        escrow_status = await self._recompute_status(order)

        logger.info(
            "escrow.refunded",
            order_id=str(order_id),
            amount=str(amount),
            escrow_status=escrow_status.value,
        )
        return LedgerResult(txn, True, escrow_status)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_balance(self, order_id: uuid.UUID) -> EscrowBalance:
        return EscrowBalance.from_sums(await self._txn_repo.sums_by_type(order_id))

    async def get_summary(self, order_id: uuid.UUID) -> dict:
        """Balances, escrow status and the full ledger for an order."""
        order = await self._get_order_or_raise(order_id, for_update=False)
        balance = await self.get_balance(order.id)
        return {
            "order_id": order.id,
            "currency": order.currency,
            "escrow_status": order.escrow_status,
            **balance.to_dict(),
            "transactions": await self._txn_repo.get_by_order(order.id),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_order_or_raise(self, order_id: uuid.UUID, for_update: bool = True) -> Order:
        order = await self._order_repo.get_by_id(order_id, for_update=for_update)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def _guard(self, order: Order, balance: EscrowBalance, amount: Decimal) -> None:
        """Reject a write that would move more money out than was held."""
        if amount < ZERO or not balance.allows(amount):
            alerts.critical(
                "escrow.invariant_violation",
                order_id=str(order.id),
                held=str(balance.held),
                released=str(balance.released),
                refunded=str(balance.refunded),
                attempted=str(amount),
            )
            raise EscrowInvariantError(
                str(order.id), balance.held, balance.released, balance.refunded, amount
            )

    async def _recompute_status(self, order: Order) -> EscrowStatus:
        balance = await self.get_balance(order.id)
        escrow_status = derive_escrow_status(balance)
        await self._order_repo.update_escrow_status(order, escrow_status)
        return escrow_status
