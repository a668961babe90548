"""Domain exceptions for the errand fulfillment engine.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.
Idempotent no-ops (duplicate release, nothing to refund, event for a vanished
order) are NOT errors and never raise.
"""

from __future__ import annotations

from decimal import Decimal


class FulfillmentError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "FULFILLMENT_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- State Machine Errors ---


class InvalidStateTransitionError(FulfillmentError):
    """Raised when an attempted state transition is not allowed.

    Example: pending -> completed (a stage must be accepted and started first)
    """

    def __init__(self, current_state: str, attempted_state: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {current_state} -> {attempted_state}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_state = attempted_state


# --- Lookup Errors ---


class OrderNotFoundError(FulfillmentError):
    """Raised when an order ID does not exist."""

    def __init__(self, order_id: str) -> None:
        super().__init__(
            message=f"Order not found: {order_id}",
            code="ORDER_NOT_FOUND",
        )
        self.order_id = order_id


class StageNotFoundError(FulfillmentError):
    """Raised when a stage ID does not exist or belongs to another order."""

    def __init__(self, order_id: str, stage_id: str) -> None:
        super().__init__(
            message=f"Stage {stage_id} not found on order {order_id}",
            code="STAGE_NOT_FOUND",
        )
        self.order_id = order_id
        self.stage_id = stage_id


# --- Order Intake Errors ---


class NonActionableIntentError(FulfillmentError):
    """Raised when an order is requested for DISCOVER or RATE."""

    def __init__(self, intent: str) -> None:
        super().__init__(
            message=f"Intent {intent} does not produce an order",
            code="NON_ACTIONABLE_INTENT",
        )
        self.intent = intent


class TrialConstraintError(FulfillmentError):
    """Raised when a TRY order breaks the trial policy."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="TRIAL_CONSTRAINT_VIOLATION")


class StagePlanError(FulfillmentError):
    """Raised when a stage plan is empty, too short, or mis-numbered."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_STAGE_PLAN")


# --- Escrow Errors ---


class InvalidAmountError(FulfillmentError):
    """Raised when a hold amount is negative or finer than the currency quantum."""

    def __init__(self, amount: Decimal, reason: str = "must be non-negative") -> None:
        super().__init__(
            message=f"Escrow amount {reason}, got {amount}",
            code="INVALID_AMOUNT",
        )
        self.amount = amount


class EscrowInvariantError(FulfillmentError):
    """Raised when a write would push release + refund above the held total.

    Never clamp this away: it signals a bug in the caller or a storage race
    that got past the per-stage uniqueness guard.
    """

    def __init__(
        self,
        order_id: str,
        held: Decimal,
        released: Decimal,
        refunded: Decimal,
        attempted: Decimal,
    ) -> None:
        super().__init__(
            message=(
                f"Escrow invariant violated on order {order_id}: "
                f"held={held} released={released} refunded={refunded} "
                f"attempted={attempted}"
            ),
            code="ESCROW_INVARIANT_VIOLATION",
        )
        self.order_id = order_id
        self.held = held
        self.released = released
        self.refunded = refunded
        self.attempted = attempted
