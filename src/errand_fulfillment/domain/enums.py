"""Domain enumerations for the errand fulfillment engine.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class Intent(enum.StrEnum):
    """Customer-declared purpose of an order.

    TASK, BUY, COORDINATE and TRY produce an order. DISCOVER and RATE
    only navigate to browsing screens and never produce one.
    """

    TASK = "TASK"
    BUY = "BUY"
    COORDINATE = "COORDINATE"
    DISCOVER = "DISCOVER"
    RATE = "RATE"
    TRY = "TRY"


ACTIONABLE_INTENTS: frozenset[Intent] = frozenset(
    {Intent.TASK, Intent.BUY, Intent.COORDINATE, Intent.TRY}
)


class OrderStructureType(enum.StrEnum):
    """Internal fulfillment shape, derived from intent and context."""

    DIRECT = "DIRECT"
    PURCHASE_DELIVER = "PURCHASE_DELIVER"
    CHAIN = "CHAIN"


class RecipientType(enum.StrEnum):
    SELF = "SELF"
    THIRD_PARTY = "THIRD_PARTY"


class PromptReason(enum.StrEnum):
    """Why a reclassification prompt was raised."""

    HAS_PURCHASE = "has_purchase"
    THIRD_PARTY = "third_party"
    AUTO_CONVERT = "auto_convert"
    COMPLEX_CHAIN = "complex_chain"


class StageType(enum.StrEnum):
    PURCHASE = "purchase"
    PICKUP = "pickup"
    DROPOFF = "dropoff"
    HANDOVER = "handover"
    ONSITE = "onsite"


class StageStatus(enum.StrEnum):
    """Lifecycle states of a single fulfillment stage.

    Transitions are enforced by StageStateMachine.
    See domain/state_machine.py for the transition table.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STAGE_STATUSES: frozenset[StageStatus] = frozenset(
    {StageStatus.COMPLETED, StageStatus.FAILED}
)


class OrderStatus(enum.StrEnum):
    """Lifecycle states of an order (guarded by OrderStateMachine)."""

    DRAFT = "draft"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


TERMINAL_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELED}
)


class TransactionType(enum.StrEnum):
    """Kinds of rows in the append-only escrow ledger."""

    HOLD = "hold"
    RELEASE = "release"
    REFUND = "refund"


class TransactionStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class EscrowStatus(enum.StrEnum):
    """Order-level escrow projection, recomputed from ledger sums."""

    NONE = "none"
    HELD = "held"
    PARTIAL = "partial"
    RELEASED = "released"
    REFUNDED = "refunded"


class NotificationType(enum.StrEnum):
    STAGE_UPDATE = "stage_update"
    ORDER_STATUS = "order_status"


class AnalyticsEventType(enum.StrEnum):
    """Intent funnel events kept in the bounded analytics buffer."""

    INTENT_SELECTED = "intent_selected"
    INTENT_COMPLETED = "intent_completed"
    INTENT_ABANDONED = "intent_abandoned"
    PROMPT_SHOWN = "prompt_shown"
    PROMPT_ACCEPTED = "prompt_accepted"
    PROMPT_DECLINED = "prompt_declined"
