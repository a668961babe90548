"""Intent analytics REST API routes.

Routes:
    POST   /api/v1/analytics/intents  — Record an intent funnel event
    GET    /api/v1/analytics/intents  — Newest buffered events
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from errand_fulfillment.api.deps import get_analytics_service
from errand_fulfillment.schemas.analytics import IntentEventResponse, TrackIntentEventRequest
from errand_fulfillment.services.analytics_service import IntentAnalyticsService

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.post(
    "/intents",
    response_model=IntentEventResponse,
    status_code=201,
    summary="Track an intent event",
)
async def track_intent_event(
    request: TrackIntentEventRequest,
    analytics: IntentAnalyticsService = Depends(get_analytics_service),
) -> IntentEventResponse:
    entry = await analytics.track(
        event_type=request.event_type,
        intent=request.intent,
        user_id=request.user_id,
        metadata=request.metadata,
    )
    return IntentEventResponse.model_validate(entry)


@router.get(
    "/intents",
    response_model=list[IntentEventResponse],
    summary="Recent intent events",
)
async def recent_intent_events(
    limit: int | None = Query(default=None, ge=1, le=100),
    analytics: IntentAnalyticsService = Depends(get_analytics_service),
) -> list[IntentEventResponse]:
    return [IntentEventResponse.model_validate(e) for e in await analytics.recent(limit)]
