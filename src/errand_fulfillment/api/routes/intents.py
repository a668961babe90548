"""Intent rules REST API routes.

Stateless: every endpoint evaluates the snapshot it is given.

Routes:
    GET    /api/v1/intents                  — Intent catalogue
    POST   /api/v1/intents/evaluate         — Order type + reclassification prompt
    POST   /api/v1/intents/convert          — Apply a suggested intent to a draft
    GET    /api/v1/intents/try-constraints  — Trial order policy
"""

from __future__ import annotations

from fastapi import APIRouter

from errand_fulfillment.domain.intent_rules import (
    INTENT_METADATA,
    apply_conversion,
    get_try_constraints,
    should_show_prompt,
)
from errand_fulfillment.logging_config import get_logger
from errand_fulfillment.schemas.intents import (
    ConvertIntentRequest,
    DraftStateResponse,
    EvaluateIntentResponse,
    IntentMetadataResponse,
    OrderStateSchema,
    PromptResponse,
    TryConstraintsResponse,
)

router = APIRouter(prefix="/api/v1/intents", tags=["Intents"])
logger = get_logger(__name__)


@router.get(
    "",
    response_model=list[IntentMetadataResponse],
    summary="List intents",
)
async def list_intents() -> list[IntentMetadataResponse]:
    return [IntentMetadataResponse.model_validate(m) for m in INTENT_METADATA]


@router.post(
    "/evaluate",
    response_model=EvaluateIntentResponse,
    summary="Evaluate a draft against the intent rules",
)
async def evaluate_intent(request: OrderStateSchema) -> EvaluateIntentResponse:
    """Return the derived order type and at most one reclassification prompt."""
    state = request.to_domain()
    prompt = should_show_prompt(state)

    converted = None
    if prompt.auto_convert and prompt.suggested_intent is not None:
        converted = DraftStateResponse.from_domain(
            apply_conversion(state, prompt.suggested_intent)
        )
        logger.info(
            "intent.auto_converted",
            from_intent=state.intent.value,
            to_intent=prompt.suggested_intent.value,
        )

    return EvaluateIntentResponse(
        order_type=state.order_type,
        prompt=PromptResponse.from_domain(prompt),
        converted=converted,
    )


@router.post(
    "/convert",
    response_model=DraftStateResponse,
    summary="Convert a draft to another intent",
)
async def convert_intent(request: ConvertIntentRequest) -> DraftStateResponse:
    return DraftStateResponse.from_domain(
        apply_conversion(request.state.to_domain(), request.suggested_intent)
    )


@router.get(
    "/try-constraints",
    response_model=TryConstraintsResponse,
    summary="Trial order policy",
)
async def try_constraints() -> TryConstraintsResponse:
    return TryConstraintsResponse.model_validate(get_try_constraints())
