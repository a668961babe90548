"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select, text
from sqlalchemy.dialects import postgresql, sqlite

from errand_fulfillment.domain.enums import TransactionStatus, TransactionType
from errand_fulfillment.infrastructure.database.orm_models import (
    RELEASE_ROW_PREDICATE,
    EscrowTransaction,
    Notification,
    Order,
    OrderStage,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from errand_fulfillment.domain.enums import EscrowStatus, OrderStatus, StageStatus

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OrderRepository:
    """Data access for orders."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, order: Order) -> Order:
        """Insert a new order (and any stages attached to it)."""
        self._session.add(order)
        await self._session.flush()
        return order

    async def get_by_id(self, order_id: uuid.UUID, for_update: bool = False) -> Order | None:
        """Fetch an order by its UUID, optionally locking the row."""
        stmt = select(Order).where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_customer(self, customer_id: str) -> list[Order]:
        """Fetch all orders for a customer, newest first."""
        result = await self._session.execute(
            select(Order)
            .where(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_status(self, order: Order, new_status: OrderStatus) -> Order:
        """Update the status of an order (call AFTER state machine validation)."""
        order.status = new_status.value
        order.updated_at = datetime.now(UTC)
        await self._session.flush()
        return order

    async def update_escrow_status(self, order: Order, escrow_status: EscrowStatus) -> Order:
        order.escrow_status = escrow_status.value
        order.updated_at = datetime.now(UTC)
        await self._session.flush()
        return order


class StageRepository:
    """Data access for order stages."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, stage_id: uuid.UUID) -> OrderStage | None:
        result = await self._session.execute(
            select(OrderStage).where(OrderStage.id == stage_id)
        )
        return result.scalar_one_or_none()

    async def get_by_order(self, order_id: uuid.UUID) -> list[OrderStage]:
        """Fetch all stages of an order in execution order."""
        result = await self._session.execute(
            select(OrderStage)
            .where(OrderStage.order_id == order_id)
            .order_by(OrderStage.sequence_no.asc())
        )
        return list(result.scalars().all())

    async def count_by_order(self, order_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(OrderStage).where(OrderStage.order_id == order_id)
        )
        return int(result.scalar_one())

    async def update_status(
        self,
        stage: OrderStage,
        new_status: StageStatus,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> OrderStage:
        """Update a stage's status and timestamps (call AFTER state machine validation)."""
        stage.status = new_status.value
        if started_at is not None:
            stage.started_at = started_at
        if completed_at is not None:
            stage.completed_at = completed_at
        await self._session.flush()
        return stage


class EscrowTransactionRepository:
    """Data access for the append-only escrow ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        order_id: uuid.UUID,
        transaction_type: TransactionType,
        amount: Decimal,
        currency: str,
        stage_id: uuid.UUID | None = None,
        notes: str | None = None,
    ) -> EscrowTransaction:
        """Append a completed ledger row. This is the ONLY write besides releases."""
        now = datetime.now(UTC)
        txn = EscrowTransaction(
            order_id=order_id,
            stage_id=stage_id,
            transaction_type=transaction_type.value,
            amount=amount,
            currency=currency,
            status=TransactionStatus.COMPLETED.value,
            notes=notes,
            created_at=now,
            completed_at=now,
        )
        self._session.add(txn)
        await self._session.flush()
        return txn

    async def insert_release_if_absent(
        self,
        order_id: uuid.UUID,
        stage_id: uuid.UUID,
        amount: Decimal,
        currency: str,
        notes: str | None = None,
    ) -> tuple[EscrowTransaction, bool]:
        """Atomically insert the release row for a stage unless one exists.

        Uses INSERT ... ON CONFLICT DO NOTHING against the partial unique
        index, so two concurrent completions for the same stage cannot both
        write. Returns the surviving row and whether this call created it.
        """
        now = datetime.now(UTC)
        insert = _INSERT_BY_DIALECT[self._session.bind.dialect.name]
        stmt = (
            insert(EscrowTransaction)
            .values(
                id=uuid.uuid4(),
                order_id=order_id,
                stage_id=stage_id,
                transaction_type=TransactionType.RELEASE.value,
                amount=amount,
                currency=currency,
                status=TransactionStatus.COMPLETED.value,
                notes=notes,
                created_at=now,
                completed_at=now,
            )
            .on_conflict_do_nothing(
                index_elements=["order_id", "stage_id"],
                index_where=text(RELEASE_ROW_PREDICATE),
            )
            .returning(EscrowTransaction.id)
        )
        inserted_id = (await self._session.execute(stmt)).scalar_one_or_none()

        existing = await self.get_release(order_id, stage_id)
        if existing is None:
            raise RuntimeError(f"Release row vanished for order {order_id} stage {stage_id}")
        return existing, inserted_id is not None

    async def get_release(
        self, order_id: uuid.UUID, stage_id: uuid.UUID
    ) -> EscrowTransaction | None:
        result = await self._session.execute(
            select(EscrowTransaction).where(
                EscrowTransaction.order_id == order_id,
                EscrowTransaction.stage_id == stage_id,
                EscrowTransaction.transaction_type == TransactionType.RELEASE.value,
            )
        )
        return result.scalar_one_or_none()

    async def count_releases(self, order_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(EscrowTransaction)
            .where(
                EscrowTransaction.order_id == order_id,
                EscrowTransaction.transaction_type == TransactionType.RELEASE.value,
            )
        )
        return int(result.scalar_one())

    async def sums_by_type(self, order_id: uuid.UUID) -> dict[str, Decimal]:
        """Return {transaction_type: SUM(amount)} over completed rows of an order."""
        result = await self._session.execute(
            select(
                EscrowTransaction.transaction_type,
                func.sum(EscrowTransaction.amount),
            )
            .where(
                EscrowTransaction.order_id == order_id,
                EscrowTransaction.status == TransactionStatus.COMPLETED.value,
            )
            .group_by(EscrowTransaction.transaction_type)
        )
        return {row[0]: Decimal(str(row[1] or 0)) for row in result.all()}

    async def get_by_order(self, order_id: uuid.UUID) -> list[EscrowTransaction]:
        """Fetch the ledger for an order in chronological order."""
        result = await self._session.execute(
            select(EscrowTransaction)
            .where(EscrowTransaction.order_id == order_id)
            .order_by(EscrowTransaction.created_at.asc())
        )
        return list(result.scalars().all())


class NotificationRepository:
    """Data access for in-app notifications."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, notification: Notification) -> Notification:
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def get_by_user(self, user_id: str) -> list[Notification]:
        """Fetch all notifications for a user, newest first."""
        result = await self._session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        return list(result.scalars().all())
