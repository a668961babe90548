"""Tests for stage plan construction."""

from __future__ import annotations

import pytest

from errand_fulfillment.domain.enums import OrderStructureType, StageType
from errand_fulfillment.domain.exceptions import StagePlanError
from errand_fulfillment.domain.stage_plan import (
    StageSpec,
    build_stage_plan,
    default_stage_specs,
    validate_sequence,
)


class TestDefaultPlan:
    def test_direct_is_single_dropoff(self) -> None:
        specs = default_stage_specs(OrderStructureType.DIRECT)
        assert [s.stage_type for s in specs] == [StageType.DROPOFF]

    @pytest.mark.parametrize(
        "order_type", [OrderStructureType.PURCHASE_DELIVER, OrderStructureType.CHAIN]
    )
    def test_purchase_then_dropoff(self, order_type: OrderStructureType) -> None:
        specs = default_stage_specs(order_type)
        assert [s.stage_type for s in specs] == [StageType.PURCHASE, StageType.DROPOFF]

    def test_locations_are_carried_over(self) -> None:
        specs = default_stage_specs(
            OrderStructureType.PURCHASE_DELIVER,
            pickup=StageSpec(stage_type=StageType.PICKUP, address_text="Store", lat=24.7, lng=46.6),
            dropoff=StageSpec(stage_type=StageType.DROPOFF, address_text="Home"),
        )
        assert specs[0].stage_type == StageType.PURCHASE
        assert specs[0].address_text == "Store"
        assert specs[1].address_text == "Home"


class TestBuildStagePlan:
    def test_numbers_from_one(self) -> None:
        plan = build_stage_plan(
            OrderStructureType.CHAIN,
            [
                StageSpec(stage_type=StageType.PICKUP),
                StageSpec(stage_type=StageType.HANDOVER),
                StageSpec(stage_type=StageType.DROPOFF),
            ],
        )
        assert [s.sequence_no for s in plan] == [1, 2, 3]
        assert [s.stage_type for s in plan] == [
            StageType.PICKUP,
            StageType.HANDOVER,
            StageType.DROPOFF,
        ]

    def test_falls_back_to_default(self) -> None:
        plan = build_stage_plan(OrderStructureType.PURCHASE_DELIVER)
        assert [(s.sequence_no, s.stage_type) for s in plan] == [
            (1, StageType.PURCHASE),
            (2, StageType.DROPOFF),
        ]

    def test_default_plan_takes_draft_locations(self) -> None:
        plan = build_stage_plan(
            OrderStructureType.DIRECT,
            dropoff=StageSpec(stage_type=StageType.DROPOFF, address_text="Office", lat=24.7, lng=46.7),
        )
        assert [(s.sequence_no, s.address_text, s.lat) for s in plan] == [(1, "Office", 24.7)]

    def test_explicit_stages_ignore_draft_locations(self) -> None:
        plan = build_stage_plan(
            OrderStructureType.DIRECT,
            [StageSpec(stage_type=StageType.ONSITE, address_text="Site")],
            dropoff=StageSpec(stage_type=StageType.DROPOFF, address_text="Office"),
        )
        assert [(s.stage_type, s.address_text) for s in plan] == [(StageType.ONSITE, "Site")]

    def test_chain_needs_two_stages(self) -> None:
        with pytest.raises(StagePlanError):
            build_stage_plan(OrderStructureType.CHAIN, [StageSpec(stage_type=StageType.DROPOFF)])

    def test_direct_may_have_one_stage(self) -> None:
        plan = build_stage_plan(OrderStructureType.DIRECT, [StageSpec(stage_type=StageType.ONSITE)])
        assert len(plan) == 1


class TestValidateSequence:
    def test_contiguous_passes(self) -> None:
        validate_sequence([2, 1, 3])

    @pytest.mark.parametrize("numbers", [[0, 1], [1, 3], [1, 1, 2], [2]])
    def test_gaps_and_duplicates_fail(self, numbers: list[int]) -> None:
        with pytest.raises(StagePlanError):
            validate_sequence(numbers)
