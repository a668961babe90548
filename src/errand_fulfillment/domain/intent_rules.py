"""Intent rules engine.

Pure decision functions that map a customer's declared intent onto an order
structure, and detect when the draft the customer is building no longer fits
that intent. No I/O, no shared state: every function takes a snapshot and
returns a decision, so they are safe to call from concurrent drafts.

Reclassification rules are evaluated in priority order, first match wins:

    R1 has_purchase   TASK + purchase + SELF            -> suggest BUY
    R2 third_party    TASK + THIRD_PARTY                -> suggest COORDINATE
    R3 auto_convert   BUY + THIRD_PARTY                 -> COORDINATE (auto)
    R4 complex_chain  TASK|BUY + (>= 3 stages|handover) -> suggest COORDINATE

A state can satisfy several rules at once (BUY + THIRD_PARTY + 5 stages
matches R3 and R4); the order of _PROMPT_RULES is what decides.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

from errand_fulfillment.domain.enums import (
    ACTIONABLE_INTENTS,
    Intent,
    OrderStructureType,
    PromptReason,
    RecipientType,
)

TRY_STAGES_MAX = 2
COMPLEX_CHAIN_MIN_STAGES = 3


@dataclass(frozen=True)
class OrderState:
    """Snapshot of an order draft, re-derived on every navigation step.

    Attributes:
        intent: The intent currently attached to the draft.
        has_purchase: Whether any stage involves buying something.
        recipient_type: Who receives the result.
        stages_count: Number of fulfillment stages planned so far.
        has_handover: Whether a handover stage is planned.
        recurring: Whether the customer asked for a repeating order.
        experiment_flag: Set for trial (TRY) orders.
    """

    intent: Intent
    has_purchase: bool = False
    recipient_type: RecipientType = RecipientType.SELF
    stages_count: int = 1
    has_handover: bool = False
    recurring: bool = False
    experiment_flag: bool = False

    @property
    def order_type(self) -> OrderStructureType:
        """Structure type derived from the current fields."""
        return determine_order_type(
            self.intent, self.has_purchase, self.recipient_type, self.stages_count
        )


@dataclass(frozen=True)
class PromptResult:
    show: bool
    suggested_intent: Intent | None = None
    reason: PromptReason | None = None
    auto_convert: bool = False

    def to_dict(self) -> dict:
        return {
            "show": self.show,
            "suggested_intent": self.suggested_intent,
            "reason": self.reason,
            "auto_convert": self.auto_convert,
        }


@dataclass(frozen=True)
class TryConstraints:
    stages_max: int
    recurring: bool
    require_price_cap: bool
    experiment_flag: bool


@dataclass(frozen=True)
class IntentMetadata:
    code: Intent
    title: str
    description: str
    tooltip: str
    is_actionable: bool


# ---------------------------------------------------------------------------
# Order structure mapping
# ---------------------------------------------------------------------------


def determine_order_type(
    intent: Intent,
    has_purchase: bool,
    recipient_type: RecipientType,
    stages_count: int,
) -> OrderStructureType:
    """Map an intent and its context onto a structure type. Total, first match wins."""
    if intent == Intent.COORDINATE:
        return OrderStructureType.CHAIN

    if intent == Intent.BUY and recipient_type == RecipientType.THIRD_PARTY:
        return OrderStructureType.CHAIN

    if intent == Intent.BUY and recipient_type == RecipientType.SELF:
        return OrderStructureType.PURCHASE_DELIVER

    if intent == Intent.TASK and not has_purchase and recipient_type == RecipientType.SELF:
        return OrderStructureType.DIRECT

    if intent == Intent.TASK and has_purchase:
        return OrderStructureType.PURCHASE_DELIVER

    if intent == Intent.TRY:
        if has_purchase:
            return OrderStructureType.PURCHASE_DELIVER
        return OrderStructureType.DIRECT

    if stages_count >= COMPLEX_CHAIN_MIN_STAGES:
        return OrderStructureType.CHAIN

    return OrderStructureType.DIRECT


def intent_to_order_type(intent: Intent) -> OrderStructureType:
    """Initial structure shown as soon as an intent is picked, before any details."""
    return {
        Intent.TASK: OrderStructureType.DIRECT,
        Intent.BUY: OrderStructureType.PURCHASE_DELIVER,
        Intent.COORDINATE: OrderStructureType.CHAIN,
        Intent.TRY: OrderStructureType.DIRECT,
    }.get(intent, OrderStructureType.DIRECT)


def is_actionable(intent: Intent) -> bool:
    return intent in ACTIONABLE_INTENTS


# ---------------------------------------------------------------------------
# Reclassification prompts
# ---------------------------------------------------------------------------

_PROMPT_RULES: tuple[tuple[Callable[[OrderState], bool], PromptResult], ...] = (
    (
        lambda s: (
            s.intent == Intent.TASK
            and s.has_purchase
            and s.recipient_type == RecipientType.SELF
        ),
        PromptResult(
            show=True,
            suggested_intent=Intent.BUY,
            reason=PromptReason.HAS_PURCHASE,
        ),
    ),
    (
        lambda s: s.intent == Intent.TASK and s.recipient_type == RecipientType.THIRD_PARTY,
        PromptResult(
            show=True,
            suggested_intent=Intent.COORDINATE,
            reason=PromptReason.THIRD_PARTY,
        ),
    ),
    (
        lambda s: s.intent == Intent.BUY and s.recipient_type == RecipientType.THIRD_PARTY,
        PromptResult(
            show=True,
            suggested_intent=Intent.COORDINATE,
            reason=PromptReason.AUTO_CONVERT,
            auto_convert=True,
        ),
    ),
    (
        lambda s: (
            s.intent in (Intent.TASK, Intent.BUY)
            and (s.stages_count >= COMPLEX_CHAIN_MIN_STAGES or s.has_handover)
        ),
        PromptResult(
            show=True,
            suggested_intent=Intent.COORDINATE,
            reason=PromptReason.COMPLEX_CHAIN,
        ),
    ),
)

_NO_PROMPT = PromptResult(show=False)


def should_show_prompt(state: OrderState) -> PromptResult:
    """Return the single highest-priority reclassification prompt for a draft."""
    for predicate, result in _PROMPT_RULES:
        if predicate(state):
            return result
    return _NO_PROMPT


def apply_conversion(state: OrderState, suggested_intent: Intent) -> OrderState:
    """Move a draft to a new intent. Idempotent.

    The derived order type follows automatically from OrderState.order_type.
    Converting to TRY also applies the trial constraints.
    """
    converted = replace(state, intent=suggested_intent)

    if suggested_intent == Intent.TRY:
        constraints = get_try_constraints()
        converted = replace(
            converted,
            stages_count=min(state.stages_count, constraints.stages_max),
            recurring=constraints.recurring,
            experiment_flag=constraints.experiment_flag,
        )

    return converted


def get_try_constraints() -> TryConstraints:
    """Static trial policy. The price cap itself is enforced at order intake."""
    return TryConstraints(
        stages_max=TRY_STAGES_MAX,
        recurring=False,
        require_price_cap=True,
        experiment_flag=True,
    )


# ---------------------------------------------------------------------------
# Intent catalogue
# ---------------------------------------------------------------------------

INTENT_METADATA: tuple[IntentMetadata, ...] = (
    IntentMetadata(
        code=Intent.TASK,
        title="Complete a Task",
        description="Errand, delivery, or anything you need done fast",
        tooltip="A single task for you, no detours",
        is_actionable=True,
    ),
    IntentMetadata(
        code=Intent.BUY,
        title="Buy for Me",
        description="What do you need? We'll buy it for you",
        tooltip="We buy, deliver, and provide the receipt",
        is_actionable=True,
    ),
    IntentMetadata(
        code=Intent.COORDINATE,
        title="Coordinate for Me",
        description="Purchase/pickup and deliver to a third party",
        tooltip="We coordinate between parties and make it work",
        is_actionable=True,
    ),
    IntentMetadata(
        code=Intent.DISCOVER,
        title="Discover Market",
        description="Browse options and compare before deciding",
        tooltip="Browse and compare without placing an order",
        is_actionable=False,
    ),
    IntentMetadata(
        code=Intent.RATE,
        title="Rate Before Choosing",
        description="Know the good from the bad before you choose",
        tooltip="Quality from internal reviews and external sources",
        is_actionable=False,
    ),
    IntentMetadata(
        code=Intent.TRY,
        title="Try Risk-Free",
        description="Try it once and see for yourself",
        tooltip="One-time trial with limited scope",
        is_actionable=True,
    ),
)


def get_intent_metadata(intent: Intent) -> IntentMetadata | None:
    return next((m for m in INTENT_METADATA if m.code == intent), None)
