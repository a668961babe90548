"""Domain layer — pure business logic with zero framework dependencies."""

from errand_fulfillment.domain.enums import (
    EscrowStatus,
    Intent,
    OrderStatus,
    OrderStructureType,
    RecipientType,
    StageStatus,
    StageType,
    TransactionType,
)
from errand_fulfillment.domain.exceptions import (
    EscrowInvariantError,
    FulfillmentError,
    InvalidStateTransitionError,
    OrderNotFoundError,
    StageNotFoundError,
)
from errand_fulfillment.domain.intent_rules import (
    OrderState,
    PromptResult,
    apply_conversion,
    determine_order_type,
    get_try_constraints,
    should_show_prompt,
)
from errand_fulfillment.domain.state_machine import (
    OrderStateMachine,
    StageStateMachine,
    validate_transition,
)

__all__ = [
    "EscrowStatus",
    "Intent",
    "OrderStatus",
    "OrderStructureType",
    "RecipientType",
    "StageStatus",
    "StageType",
    "TransactionType",
    "EscrowInvariantError",
    "FulfillmentError",
    "InvalidStateTransitionError",
    "OrderNotFoundError",
    "StageNotFoundError",
    "OrderState",
    "PromptResult",
    "apply_conversion",
    "determine_order_type",
    "get_try_constraints",
    "should_show_prompt",
    "OrderStateMachine",
    "StageStateMachine",
    "validate_transition",
]
