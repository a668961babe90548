"""Intent analytics buffer.

Tracks which intents customers pick, abandon, and how they answer
reclassification prompts. Events live in a Redis list capped at
`analytics_buffer_size`, newest first; older entries fall off the end.
The buffer is owned by the application layer, never by the rules engine.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from errand_fulfillment.config import get_settings
from errand_fulfillment.infrastructure import redis_client
from errand_fulfillment.logging_config import get_logger

if TYPE_CHECKING:
    from errand_fulfillment.domain.enums import AnalyticsEventType, Intent

logger = get_logger(__name__)

ANONYMOUS_USER = "anonymous"


class IntentAnalyticsService:
    """Append-only, bounded intent event buffer."""

    def __init__(self, key: str | None = None, max_events: int | None = None) -> None:
        settings = get_settings()
        self._key = key or settings.analytics_buffer_key
        self._max_events = max_events or settings.analytics_buffer_size

    async def track(
        self,
        event_type: AnalyticsEventType,
        intent: Intent,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Record one event and return the stored entry."""
        entry = {
            "event_type": event_type.value,
            "intent": intent.value,
            "metadata": {
                **(metadata or {}),
                "timestamp": datetime.now(UTC).isoformat(),
                "user_id": user_id or ANONYMOUS_USER,
            },
        }
        await redis_client.push_capped(self._key, json.dumps(entry), self._max_events)
        logger.info(
            "analytics.tracked",
            event_type=event_type.value,
            intent=intent.value,
        )
        return entry

    async def recent(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Return up to `limit` newest events (all retained events by default)."""
        count = min(limit or self._max_events, self._max_events)
        raw = await redis_client.get_redis().lrange(self._key, 0, count - 1)
        return [json.loads(item) for item in raw]

