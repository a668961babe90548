"""Application services — use case orchestration."""

from errand_fulfillment.services.analytics_service import IntentAnalyticsService
from errand_fulfillment.services.escrow_ledger import EscrowLedger, LedgerResult
from errand_fulfillment.services.notifications import (
    InAppNotificationSink,
    NotificationMessage,
    NotificationSink,
)
from errand_fulfillment.services.order_service import OrderService, OrderTransition
from errand_fulfillment.services.orchestrator import (
    FulfillmentOrchestrator,
    StageEventOutcome,
    StageStatusChanged,
)
from errand_fulfillment.services.stage_service import StageService

__all__ = [
    "EscrowLedger",
    "FulfillmentOrchestrator",
    "InAppNotificationSink",
    "IntentAnalyticsService",
    "LedgerResult",
    "NotificationMessage",
    "NotificationSink",
    "OrderService",
    "OrderTransition",
    "StageEventOutcome",
    "StageService",
    "StageStatusChanged",
]
