"""Fulfillment stage planning.

Turns an order structure type (plus any stages the customer laid out) into
the ordered, numbered list of stages that is persisted when the order is
finalized. Sequence numbers are the only ordering key: unique, contiguous,
starting at 1.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from errand_fulfillment.domain.enums import OrderStructureType, StageType
from errand_fulfillment.domain.exceptions import StagePlanError

CHAIN_MIN_STAGES = 2


@dataclass(frozen=True)
class StageSpec:
    """A stage as requested by the customer, before numbering."""

    stage_type: StageType
    address_text: str | None = None
    lat: float | None = None
    lng: float | None = None
    assigned_executor_id: str | None = None


@dataclass(frozen=True)
class PlannedStage(StageSpec):
    sequence_no: int = 0


def default_stage_specs(
    order_type: OrderStructureType,
    pickup: StageSpec | None = None,
    dropoff: StageSpec | None = None,
) -> list[StageSpec]:
    """Default plan: a purchase leg for PURCHASE_DELIVER/CHAIN, then a dropoff."""
    specs: list[StageSpec] = []
    if order_type in (OrderStructureType.PURCHASE_DELIVER, OrderStructureType.CHAIN):
        base = pickup or StageSpec(stage_type=StageType.PURCHASE)
        specs.append(replace(base, stage_type=StageType.PURCHASE))

    base = dropoff or StageSpec(stage_type=StageType.DROPOFF)
    specs.append(replace(base, stage_type=StageType.DROPOFF))
    return specs


def build_stage_plan(
    order_type: OrderStructureType,
    specs: list[StageSpec] | None = None,
    pickup: StageSpec | None = None,
    dropoff: StageSpec | None = None,
) -> list[PlannedStage]:
    """Number the requested stages, or fall back to the default plan.

    `pickup` and `dropoff` carry the draft's locations into the default plan
    and are ignored when explicit stages are given.

    Raises:
        StagePlanError: If a CHAIN order ends up with fewer than two stages.
    """
    chosen = list(specs) if specs else default_stage_specs(order_type, pickup, dropoff)

    if order_type == OrderStructureType.CHAIN and len(chosen) < CHAIN_MIN_STAGES:
        raise StagePlanError(
            f"CHAIN orders need at least {CHAIN_MIN_STAGES} stages, got {len(chosen)}"
        )

    return [
        PlannedStage(
            stage_type=spec.stage_type,
            address_text=spec.address_text,
            lat=spec.lat,
            lng=spec.lng,
            assigned_executor_id=spec.assigned_executor_id,
            sequence_no=index,
        )
        for index, spec in enumerate(chosen, start=1)
    ]


def validate_sequence(sequence_numbers: list[int]) -> None:
    """Check that sequence numbers are unique and contiguous from 1."""
    if sorted(sequence_numbers) != list(range(1, len(sequence_numbers) + 1)):
        raise StagePlanError(
            f"Stage sequence must be 1..{len(sequence_numbers)}, got {sorted(sequence_numbers)}"
        )
