"""Pydantic schemas for orders, stages and the escrow ledger.

These schemas define the request/response shapes for the REST API. They
are separate from the ORM models to keep the API and database layers apart.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from errand_fulfillment.domain.enums import (
    Intent,
    RecipientType,
    StageStatus,
    StageType,
)
from errand_fulfillment.domain.stage_plan import StageSpec

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class StageSpecSchema(BaseModel):
    """A stage the customer laid out on the draft."""

    stage_type: StageType
    address_text: str | None = Field(default=None, max_length=500)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    assigned_executor_id: str | None = None

    def to_domain(self) -> StageSpec:
        return StageSpec(
            stage_type=self.stage_type,
            address_text=self.address_text,
            lat=self.lat,
            lng=self.lng,
            assigned_executor_id=self.assigned_executor_id,
        )


class LocationSchema(BaseModel):
    """Pickup or dropoff location of a draft without explicit stages."""

    address_text: str | None = Field(default=None, max_length=500)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)

    def to_domain(self, stage_type: StageType) -> StageSpec:
        return StageSpec(
            stage_type=stage_type,
            address_text=self.address_text,
            lat=self.lat,
            lng=self.lng,
        )

class CreateOrderRequest(BaseModel):
    """Request body for finalizing a draft into an order."""

    customer_id: str = Field(..., min_length=1, max_length=64)
    intent: Intent
    recipient_type: RecipientType = RecipientType.SELF
    has_purchase: bool = False
    stages: list[StageSpecSchema] | None = Field(
        default=None,
        description="Stages in execution order. Omit to use the default plan for the order type.",
    )
    pickup: LocationSchema | None = Field(
        default=None, description="Purchase location for the default plan."
    )
    dropoff: LocationSchema | None = Field(
        default=None, description="Delivery location for the default plan."
    )
    recurring: bool = False
    purchase_price_cap: Decimal | None = Field(
        default=None,
        gt=0,
        decimal_places=2,
        description="Upper bound on purchase spend. Required for TRY orders.",
    )
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    notes: str | None = Field(default=None, max_length=5000)


class PaymentCapturedRequest(BaseModel):
    """Payment provider confirmation that funds were captured."""

    amount: Decimal = Field(..., ge=0, decimal_places=2, examples=[300.0])
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class RejectOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class StageStatusUpdateRequest(BaseModel):
    """Executor report that a stage moved to a new status."""

    new_status: StageStatus
    executor_id: str | None = None


class RefundRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class StageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sequence_no: int
    stage_type: str
    status: str
    lat: float | None
    lng: float | None
    address_text: str | None
    assigned_executor_id: str | None
    started_at: datetime | None
    completed_at: datetime | None


class OrderResponse(BaseModel):
    """Response schema for an order and its stages."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_id: str
    intent: str
    order_type: str
    recipient_type: str
    recurring: bool
    experiment_flag: bool
    status: str
    escrow_status: str
    currency: str
    purchase_price_cap: Decimal | None
    notes: str | None
    stages: list[StageResponse]
    created_at: datetime
    updated_at: datetime


class EscrowTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    stage_id: uuid.UUID | None
    transaction_type: str
    amount: Decimal
    currency: str
    status: str
    notes: str | None
    created_at: datetime


class EscrowSummaryResponse(BaseModel):
    """Ledger balances for an order."""

    order_id: uuid.UUID
    currency: str
    escrow_status: str
    held: Decimal
    released: Decimal
    refunded: Decimal
    remaining: Decimal
    transactions: list[EscrowTransactionResponse]


class LedgerResultResponse(BaseModel):
    created: bool
    escrow_status: str
    transaction: EscrowTransactionResponse | None = None


class StageEventResponse(BaseModel):
    """What the orchestrator did with a stage status change."""

    model_config = ConfigDict(from_attributes=True)

    order_id: uuid.UUID
    stage_id: uuid.UUID
    new_status: StageStatus
    noop: bool
    reason: str | None
    order_status: str | None
    escrow_status: str | None
    released: bool
    refunded: bool
