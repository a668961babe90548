"""Pydantic schemas for the intent analytics buffer."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from errand_fulfillment.domain.enums import AnalyticsEventType, Intent


class TrackIntentEventRequest(BaseModel):
    event_type: AnalyticsEventType
    intent: Intent
    user_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class IntentEventResponse(BaseModel):
    event_type: AnalyticsEventType
    intent: Intent
    metadata: dict[str, Any]

