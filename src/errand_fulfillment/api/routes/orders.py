"""Order, stage and escrow REST API routes.

Reads use the request-scoped session. Inbound signals (payment captured,
accept/reject, stage status changes, refunds) go through the orchestration
handlers, which own their transaction and send notifications after commit.

Routes:
    POST   /api/v1/orders                                — Finalize a draft into an order
    GET    /api/v1/orders                                — Orders of a customer
    GET    /api/v1/orders/{id}                           — Order details with stages
    POST   /api/v1/orders/{id}/payment-captured          — Hold captured funds
    POST   /api/v1/orders/{id}/accept                    — Executor accepts all stages
    POST   /api/v1/orders/{id}/reject                    — Executor rejects the order
    POST   /api/v1/orders/{id}/stages/{stage_id}/status  — Stage status change
    GET    /api/v1/orders/{id}/escrow                    — Ledger summary
    POST   /api/v1/orders/{id}/refund                    — Refund what is still held (cancels open orders)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from errand_fulfillment.api.deps import (
    get_db_session_factory,
    get_escrow_ledger,
    get_order_service,
)
from errand_fulfillment.domain.enums import StageType
from errand_fulfillment.logging_config import get_logger
from errand_fulfillment.orchestration import (
    process_order_decision,
    process_payment_captured,
    process_refund,
    process_stage_event,
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
    StageStatusUpdateRequest,
)
from errand_fulfillment.services.escrow_ledger import EscrowLedger
from errand_fulfillment.services.order_service import OrderService
from errand_fulfillment.services.orchestrator import StageStatusChanged

router = APIRouter(prefix="/api/v1/orders", tags=["Orders"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=OrderResponse,
    status_code=201,
    summary="Create an order from a draft",
)
async def create_order(
    request: CreateOrderRequest,
    svc: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Persist the order and its numbered stage plan in DRAFT status."""
    order = await svc.create_order(
        customer_id=request.customer_id,
        intent=request.intent,
        recipient_type=request.recipient_type,
        has_purchase=request.has_purchase,
        stages=[s.to_domain() for s in request.stages] if request.stages else None,
        pickup=request.pickup.to_domain(StageType.PURCHASE) if request.pickup else None,
        dropoff=request.dropoff.to_domain(StageType.DROPOFF) if request.dropoff else None,
        recurring=request.recurring,
        purchase_price_cap=request.purchase_price_cap,
        currency=request.currency,
        notes=request.notes,
    )
    return OrderResponse.model_validate(order)


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


@router.post(
    "/{order_id}/payment-captured",
    response_model=OrderResponse,
    summary="Record captured payment",
)
async def payment_captured(
    order_id: uuid.UUID,
    request: PaymentCapturedRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> OrderResponse:
    """Hold the captured amount in escrow. Transitions the order to PAID."""
    transition = await process_payment_captured(
        order_id,
        request.amount,
        request.currency,
        session_factory=session_factory,
    )
    return OrderResponse.model_validate(transition.order)


# ---------------------------------------------------------------------------
# Executor decision
# ---------------------------------------------------------------------------


@router.post(
    "/{order_id}/accept",
    response_model=OrderResponse,
    summary="Executor accepts the order",
)
async def accept_order(
    order_id: uuid.UUID,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> OrderResponse:
    """Accept every pending stage. Transitions PAID -> IN_PROGRESS."""
    transition = await process_order_decision(
        order_id, accept=True, session_factory=session_factory
    )
    return OrderResponse.model_validate(transition.order)


@router.post(
    "/{order_id}/reject",
    response_model=OrderResponse,
    summary="Executor rejects the order",
)
async def reject_order(
    order_id: uuid.UUID,
    request: RejectOrderRequest | None = None,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> OrderResponse:
    """Fail all open stages, refund held funds, and cancel the order."""
    transition = await process_order_decision(
        order_id,
        accept=False,
        reason=request.reason if request else None,
        session_factory=session_factory,
    )
    return OrderResponse.model_validate(transition.order)


# ---------------------------------------------------------------------------
# Stage events
# ---------------------------------------------------------------------------


@router.post(
    "/{order_id}/stages/{stage_id}/status",
    response_model=StageEventResponse,
    summary="Report a stage status change",
)
async def update_stage_status(
    order_id: uuid.UUID,
    stage_id: uuid.UUID,
    request: StageStatusUpdateRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> StageEventResponse:
    """Apply the change and settle escrow: release on completion, refund on failure."""
    outcome = await process_stage_event(
        StageStatusChanged(
            order_id=order_id,
            stage_id=stage_id,
            new_status=request.new_status,
            executor_id=request.executor_id,
        ),
        session_factory=session_factory,
    )
    return StageEventResponse.model_validate(outcome)


# ---------------------------------------------------------------------------
# Escrow
# ---------------------------------------------------------------------------


@router.get(
    "/{order_id}/escrow",
    response_model=EscrowSummaryResponse,
    summary="Escrow ledger summary",
)
async def get_escrow(
    order_id: uuid.UUID,
    ledger: EscrowLedger = Depends(get_escrow_ledger),
) -> EscrowSummaryResponse:
    summary = await ledger.get_summary(order_id)
    return EscrowSummaryResponse(
        **{k: v for k, v in summary.items() if k != "transactions"},
        transactions=[
            EscrowTransactionResponse.model_validate(t) for t in summary["transactions"]
        ],
    )


@router.post(
    "/{order_id}/refund",
    response_model=LedgerResultResponse,
    summary="Refund remaining escrow",
)
async def refund_order(
    order_id: uuid.UUID,
    request: RefundRequest | None = None,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> LedgerResultResponse:
    """Refund held - released - refunded, canceling the order if it is open."""
    result = await process_refund(
        order_id,
        reason=request.reason if request else None,
        session_factory=session_factory,
    )
    return LedgerResultResponse(
        created=result.created,
        escrow_status=result.escrow_status.value,
        transaction=(
            EscrowTransactionResponse.model_validate(result.transaction)
            if result.transaction is not None
            else None
        ),
    )


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=list[OrderResponse],
    summary="List a customer's orders",
)
async def list_orders(
    customer_id: str = Query(..., min_length=1),
    svc: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return [OrderResponse.model_validate(o) for o in await svc.list_orders(customer_id)]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order details",
)
async def get_order(
    order_id: uuid.UUID,
    svc: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Fetch an order and its stages by UUID."""
    return OrderResponse.model_validate(await svc.get_order(order_id))
