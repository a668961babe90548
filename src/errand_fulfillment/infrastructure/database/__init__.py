"""Database infrastructure — engine, ORM models, and repositories."""

from errand_fulfillment.infrastructure.database.engine import (
    close_db,
    get_async_session,
    get_session_factory,
    init_db,
)
from errand_fulfillment.infrastructure.database.orm_models import (
    Base,
    EscrowTransaction,
    Notification,
    Order,
    OrderStage,
)
from errand_fulfillment.infrastructure.database.repositories import (
    EscrowTransactionRepository,
    NotificationRepository,
    OrderRepository,
    StageRepository,
)

__all__ = [
    "Base",
    "EscrowTransaction",
    "Notification",
    "Order",
    "OrderStage",
    "EscrowTransactionRepository",
    "NotificationRepository",
    "OrderRepository",
    "StageRepository",
    "get_async_session",
    "get_session_factory",
    "init_db",
    "close_db",
]
