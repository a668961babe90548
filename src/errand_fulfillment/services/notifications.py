"""Downstream notifications for stage and order status changes.

The orchestrator only builds messages; they are dispatched after the state
change has been committed, and a failing sink never rolls anything back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from errand_fulfillment.domain.enums import NotificationType, OrderStatus, StageStatus
from errand_fulfillment.infrastructure.database.engine import session_scope
from errand_fulfillment.infrastructure.database.orm_models import Notification
from errand_fulfillment.infrastructure.database.repositories import NotificationRepository
from errand_fulfillment.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

STAGE_LABELS: dict[str, str] = {
    "purchase": "Purchase",
    "pickup": "Pickup",
    "dropoff": "Delivery",
    "handover": "Handover",
    "onsite": "On-site",
}

ORDER_STATUS_MESSAGES: dict[str, tuple[str, str]] = {
    OrderStatus.DRAFT: ("Order Created", "Your order has been created and is being prepared."),
    OrderStatus.PAYMENT_PENDING: (
        "Awaiting Payment",
        "Please complete your payment to proceed.",
    ),
    OrderStatus.PAID: (
        "Payment Confirmed",
        "Your payment was successful. We will start working on your order.",
    ),
    OrderStatus.IN_PROGRESS: (
        "Order In Progress",
        "Your order is now being processed by our team.",
    ),
    OrderStatus.COMPLETED: (
        "Order Completed",
        "Your order has been completed successfully. Thank you!",
    ),
    OrderStatus.CANCELED: ("Order Canceled", "Your order has been canceled."),
}


@dataclass(frozen=True)
class NotificationMessage:
    user_id: str
    title: str
    body: str
    type: NotificationType
    data: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can deliver a notification to a user. Fire-and-forget."""

    async def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        type: str,
        data: dict[str, Any],
    ) -> None: ...


class InAppNotificationSink:
    """Persists notifications to the notifications table in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    async def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        type: str,
        data: dict[str, Any],
    ) -> None:
        async with session_scope(self._session_factory) as session:
            await NotificationRepository(session).create(
                Notification(user_id=user_id, title=title, body=body, type=type, data=data)
            )


def stage_update_message(
    customer_id: str,
    order_id: str,
    stage_id: str,
    stage_type: str,
    sequence_no: int,
    new_status: StageStatus,
) -> NotificationMessage:
    label = STAGE_LABELS.get(stage_type, stage_type)
    if new_status == StageStatus.IN_PROGRESS:
        title = f"{label} Stage Started"
        body = f'The provider has started the "{label}" stage of your order (Step {sequence_no})'
    elif new_status == StageStatus.COMPLETED:
        title = f"{label} Stage Completed"
        body = f'The "{label}" stage has been completed successfully'
    else:
        title = f"Stage Update: {label}"
        body = f'The "{label}" stage status changed to {new_status.value}'

    return NotificationMessage(
        user_id=customer_id,
        title=title,
        body=body,
        type=NotificationType.STAGE_UPDATE,
        data={
            "orderId": order_id,
            "stageId": stage_id,
            "stageType": stage_type,
            "newStatus": new_status.value,
            "sequenceNo": sequence_no,
        },
    )


def order_status_message(
    customer_id: str,
    order_id: str,
    new_status: str,
    previous_status: str | None = None,
) -> NotificationMessage:
    title, body = ORDER_STATUS_MESSAGES.get(
        new_status, ("Order Updated", f"Your order status changed to {new_status}.")
    )
    return NotificationMessage(
        user_id=customer_id,
        title=title,
        body=body,
        type=NotificationType.ORDER_STATUS,
        data={
            "orderId": order_id,
            "newStatus": new_status,
            "previousStatus": previous_status,
        },
    )


async def dispatch_notifications(
    sink: NotificationSink,
    messages: list[NotificationMessage],
) -> int:
    """Deliver messages one by one. Failures are logged and skipped.

    Returns the number of messages the sink accepted.
    """
    delivered = 0
    for message in messages:
        try:
            await sink.notify(
                message.user_id,
                message.title,
                message.body,
                message.type.value,
                message.data,
            )
            delivered += 1
        except Exception as exc:
            logger.warning(
                "notification.dispatch_failed",
                user_id=message.user_id,
                type=message.type.value,
                error=str(exc),
            )
    return delivered
