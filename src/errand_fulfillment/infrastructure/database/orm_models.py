"""SQLAlchemy 2.0 ORM models for the errand fulfillment engine.

Four tables:
    1. orders               — Customer orders with their derived structure type.
    2. order_stages         — Ordered fulfillment steps of an order.
    3. escrow_transactions  — Append-only hold/release/refund ledger.
    4. notifications        — In-app notifications emitted downstream.

Design decisions:
    - UUIDs as primary keys.
    - Decimal (Numeric 12,2) for money; never floats.
    - Portable JSON column that becomes JSONB on PostgreSQL.
    - CHECK constraints on enum columns and on non-negative amounts.
    - (order_id, sequence_no) unique: stage order has no ties.
    - Partial unique index on (order_id, stage_id) for release rows: the
      storage-level guard that makes per-stage release idempotent.
    - escrow_transactions is append-only: no UPDATE or DELETE at the
      application level.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from errand_fulfillment.domain.enums import (
    EscrowStatus,
    Intent,
    OrderStatus,
    OrderStructureType,
    RecipientType,
    StageStatus,
    StageType,
    TransactionStatus,
    TransactionType,
)

JsonColumn = JSON().with_variant(JSONB(), "postgresql")

RELEASE_ROW_PREDICATE = "transaction_type = 'release'"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _in_values(column: str, enum_cls: type) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. orders
# ---------------------------------------------------------------------------
class Order(Base):
    """A customer order and its cached status projections."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    customer_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="User who placed the order and receives notifications",
    )

    # --- Classification ---
    intent: Mapped[str] = mapped_column(String(20), nullable=False)
    order_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Derived by the intent rules engine, never set by users",
    )
    recipient_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RecipientType.SELF.value
    )
    recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    experiment_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- Status projections ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.DRAFT.value,
        comment="Order lifecycle state (guarded by OrderStateMachine)",
    )
    escrow_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EscrowStatus.NONE.value,
        comment="Cached projection of ledger sums; recomputed after every ledger write",
    )

    # --- Money ---
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    purchase_price_cap: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        default=None,
        comment="Upper bound the executor may spend; mandatory for TRY orders",
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    stages: Mapped[list[OrderStage]] = relationship(
        "OrderStage",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStage.sequence_no",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(_in_values("intent", Intent), name="ck_order_valid_intent"),
        CheckConstraint(_in_values("order_type", OrderStructureType), name="ck_order_valid_type"),
        CheckConstraint(_in_values("status", OrderStatus), name="ck_order_valid_status"),
        CheckConstraint(
            _in_values("escrow_status", EscrowStatus), name="ck_order_valid_escrow_status"
        ),
        Index("idx_order_customer", "customer_id"),
        Index("idx_order_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Order id={self.id} type={self.order_type} status={self.status} "
            f"escrow={self.escrow_status}>"
        )


# ---------------------------------------------------------------------------
# 2. order_stages
# ---------------------------------------------------------------------------
class OrderStage(Base):
    """One fulfillment step. Only status and timestamps change after creation."""

    __tablename__ = "order_stages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    sequence_no: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1-based execution order; the only ordering key",
    )
    stage_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StageStatus.PENDING.value,
        comment="Stage lifecycle state (guarded by StageStateMachine)",
    )

    # --- Location ---
    lat: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    address_text: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    assigned_executor_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    order: Mapped[Order] = relationship("Order", back_populates="stages")

    __table_args__ = (
        UniqueConstraint("order_id", "sequence_no", name="uq_stage_sequence"),
        CheckConstraint("sequence_no >= 1", name="ck_stage_sequence_positive"),
        CheckConstraint(_in_values("stage_type", StageType), name="ck_stage_valid_type"),
        CheckConstraint(_in_values("status", StageStatus), name="ck_stage_valid_status"),
        Index("idx_stage_order", "order_id"),
        Index("idx_stage_executor", "assigned_executor_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<OrderStage id={self.id} order={self.order_id} "
            f"#{self.sequence_no} {self.stage_type} {self.status}>"
        )


# ---------------------------------------------------------------------------
# 3. escrow_transactions (Append-Only Ledger)
# ---------------------------------------------------------------------------
class EscrowTransaction(Base):
    """Immutable ledger row. The order's escrow_status is derived from these."""

    __tablename__ = "escrow_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    stage_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("order_stages.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        comment="Set for per-stage releases; null for holds and whole-order refunds",
    )

    transaction_type: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TransactionStatus.COMPLETED.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_escrow_non_negative_amount"),
        CheckConstraint(
            _in_values("transaction_type", TransactionType), name="ck_escrow_valid_type"
        ),
        CheckConstraint(
            _in_values("status", TransactionStatus), name="ck_escrow_valid_status"
        ),
        Index(
            "uq_escrow_release_per_stage",
            "order_id",
            "stage_id",
            unique=True,
            postgresql_where=text(RELEASE_ROW_PREDICATE),
            sqlite_where=text(RELEASE_ROW_PREDICATE),
        ),
        Index("idx_escrow_order", "order_id"),
        Index("idx_escrow_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EscrowTransaction id={self.id} order={self.order_id} "
            f"{self.transaction_type} {self.amount} {self.currency}>"
        )


# ---------------------------------------------------------------------------
# 4. notifications
# ---------------------------------------------------------------------------
class Notification(Base):
    """In-app notification written by the default notification sink."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    data: Mapped[dict | None] = mapped_column(JsonColumn, nullable=True, default=None)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_notification_user", "user_id"),)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user={self.user_id} type={self.type}>"
