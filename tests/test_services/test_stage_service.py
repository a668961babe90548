"""Tests for stage transitions persisted through StageService."""

from __future__ import annotations

import pytest

from errand_fulfillment.domain.enums import StageStatus
from errand_fulfillment.domain.exceptions import InvalidStateTransitionError, StageNotFoundError
from errand_fulfillment.services.stage_service import StageService


class TestTransition:
    @pytest.mark.asyncio
    async def test_start_sets_started_at(self, session, make_order) -> None:
        order = await make_order(stage_status=StageStatus.ACCEPTED)
        stage = order.stages[0]

        await StageService(session).transition(stage, StageStatus.IN_PROGRESS)

        assert stage.status == StageStatus.IN_PROGRESS
        assert stage.started_at is not None
        assert stage.completed_at is None

    @pytest.mark.asyncio
    async def test_complete_sets_completed_at(self, session, make_order) -> None:
        order = await make_order(stage_status=StageStatus.IN_PROGRESS)
        stage = order.stages[0]

        await StageService(session).transition(stage, StageStatus.COMPLETED)

        assert stage.status == StageStatus.COMPLETED
        assert stage.completed_at is not None

    @pytest.mark.asyncio
    async def test_illegal_transition_leaves_stage_alone(self, session, make_order) -> None:
        order = await make_order()
        stage = order.stages[0]

        with pytest.raises(InvalidStateTransitionError):
            await StageService(session).transition(stage, StageStatus.COMPLETED)
        assert stage.status == StageStatus.PENDING

    @pytest.mark.asyncio
    async def test_stage_lookup_is_scoped_to_order(self, session, make_order) -> None:
        order = await make_order()
        other = await make_order()
        with pytest.raises(StageNotFoundError):
            await StageService(session).get_stage_or_raise(order.id, other.stages[0].id)


class TestBulkOperations:
    @pytest.mark.asyncio
    async def test_accept_all(self, session, make_order) -> None:
        order = await make_order(stage_count=3)

        accepted = await StageService(session).accept_all(order.id)

        assert len(accepted) == 3
        assert {s.status for s in order.stages} == {StageStatus.ACCEPTED}

    @pytest.mark.asyncio
    async def test_fail_open_stages_skips_completed(self, session, make_order) -> None:
        order = await make_order(stage_count=3, stage_status=StageStatus.IN_PROGRESS)
        service = StageService(session)
        await service.transition(order.stages[0], StageStatus.COMPLETED)

        failed = await service.fail_open_stages(order.id)

        assert [s.sequence_no for s in failed] == [2, 3]
        assert [s.status for s in order.stages] == ["completed", "failed", "failed"]

    @pytest.mark.asyncio
    async def test_all_completed(self, session, make_order) -> None:
        order = await make_order(stage_count=2, stage_status=StageStatus.IN_PROGRESS)
        service = StageService(session)

        await service.transition(order.stages[0], StageStatus.COMPLETED)
        assert await service.all_completed(order.id) is False

        await service.transition(order.stages[1], StageStatus.COMPLETED)
        assert await service.all_completed(order.id) is True
