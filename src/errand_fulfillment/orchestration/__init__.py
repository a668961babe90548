"""Orchestration layer — transactional handlers for inbound signals."""

from errand_fulfillment.orchestration.stage_events import (
    process_order_decision,
    process_payment_captured,
    process_refund,
    process_stage_event,
)

__all__ = [
    "process_order_decision",
    "process_payment_captured",
    "process_refund",
    "process_stage_event",
]
