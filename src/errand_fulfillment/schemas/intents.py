"""Pydantic schemas for the intent rules API.

Requests carry a draft snapshot; responses carry the rules engine's
decisions. The engine itself works on frozen dataclasses, so every
request model knows how to turn itself into one.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from errand_fulfillment.domain.enums import (
    Intent,
    OrderStructureType,
    PromptReason,
    RecipientType,
)
from errand_fulfillment.domain.intent_rules import OrderState, PromptResult

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class OrderStateSchema(BaseModel):
    """Snapshot of an order draft as the client currently sees it."""

    model_config = ConfigDict(from_attributes=True)

    intent: Intent
    has_purchase: bool = False
    recipient_type: RecipientType = RecipientType.SELF
    stages_count: int = Field(default=1, ge=0, le=50)
    has_handover: bool = False
    recurring: bool = False
    experiment_flag: bool = False

    def to_domain(self) -> OrderState:
        return OrderState(
            intent=self.intent,
            has_purchase=self.has_purchase,
            recipient_type=self.recipient_type,
            stages_count=self.stages_count,
            has_handover=self.has_handover,
            recurring=self.recurring,
            experiment_flag=self.experiment_flag,
        )


class ConvertIntentRequest(BaseModel):
    """Move a draft to the intent suggested by a prompt."""

    state: OrderStateSchema
    suggested_intent: Intent


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class PromptResponse(BaseModel):
    show: bool
    suggested_intent: Intent | None = None
    reason: PromptReason | None = None
    auto_convert: bool = False

    @classmethod
    def from_domain(cls, result: PromptResult) -> PromptResponse:
        return cls(
            show=result.show,
            suggested_intent=result.suggested_intent,
            reason=result.reason,
            auto_convert=result.auto_convert,
        )


class DraftStateResponse(BaseModel):
    """A draft snapshot together with its derived structure type."""

    state: OrderStateSchema
    order_type: OrderStructureType

    @classmethod
    def from_domain(cls, state: OrderState) -> DraftStateResponse:
        return cls(
            state=OrderStateSchema.model_validate(state),
            order_type=state.order_type,
        )


class EvaluateIntentResponse(BaseModel):
    """Rules engine verdict for a draft.

    `converted` is filled in only when the prompt is an auto-conversion,
    so the client can apply it without asking the customer.
    """

    order_type: OrderStructureType
    prompt: PromptResponse
    converted: DraftStateResponse | None = None


class IntentMetadataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: Intent
    title: str
    description: str
    tooltip: str
    is_actionable: bool


class TryConstraintsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    stages_max: int
    recurring: bool
    require_price_cap: bool
    experiment_flag: bool
