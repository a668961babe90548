"""Pydantic API schemas."""

from errand_fulfillment.schemas.analytics import IntentEventResponse, TrackIntentEventRequest
from errand_fulfillment.schemas.health import HealthResponse
from errand_fulfillment.schemas.notifications import NotificationResponse
from errand_fulfillment.schemas.intents import (
    ConvertIntentRequest,
    DraftStateResponse,
    EvaluateIntentResponse,
    IntentMetadataResponse,
    OrderStateSchema,
    PromptResponse,
    TryConstraintsResponse,
)
from errand_fulfillment.schemas.orders import (
    CreateOrderRequest,
    EscrowSummaryResponse,
    EscrowTransactionResponse,
    LedgerResultResponse,
    OrderResponse,
    PaymentCapturedRequest,
    RefundRequest,
    RejectOrderRequest,
    StageEventResponse,
    StageResponse,
    LocationSchema,
    StageSpecSchema,
    StageStatusUpdateRequest,
)

__all__ = [
    "ConvertIntentRequest",
    "CreateOrderRequest",
    "DraftStateResponse",
    "EscrowSummaryResponse",
    "EscrowTransactionResponse",
    "EvaluateIntentResponse",
    "HealthResponse",
    "IntentEventResponse",
    "IntentMetadataResponse",
    "LedgerResultResponse",
    "NotificationResponse",
    "OrderResponse",
    "OrderStateSchema",
    "PaymentCapturedRequest",
    "PromptResponse",
    "RefundRequest",
    "RejectOrderRequest",
    "StageEventResponse",
    "StageResponse",
    "LocationSchema",
    "StageSpecSchema",
    "StageStatusUpdateRequest",
    "TrackIntentEventRequest",
    "TryConstraintsResponse",
]
