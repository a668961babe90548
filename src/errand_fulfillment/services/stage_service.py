"""Stage Sequencer persistence — moves stages through the guarded lifecycle."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from errand_fulfillment.domain.enums import TERMINAL_STAGE_STATUSES, StageStatus
from errand_fulfillment.domain.exceptions import StageNotFoundError
from errand_fulfillment.domain.state_machine import next_stage_status
from errand_fulfillment.infrastructure.database.repositories import StageRepository
from errand_fulfillment.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from errand_fulfillment.infrastructure.database.orm_models import OrderStage

logger = get_logger(__name__)


class StageService:
    """Applies validated transitions to stage rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._repo = StageRepository(session)

    async def get_stage_or_raise(self, order_id: uuid.UUID, stage_id: uuid.UUID) -> OrderStage:
        stage = await self._repo.get_by_id(stage_id)
        if stage is None or stage.order_id != order_id:
            raise StageNotFoundError(str(order_id), str(stage_id))
        return stage

    async def list_stages(self, order_id: uuid.UUID) -> list[OrderStage]:
        return await self._repo.get_by_order(order_id)

    async def transition(self, stage: OrderStage, target: StageStatus) -> OrderStage:
        """Move one stage to `target`.

        Raises:
            InvalidStateTransitionError: If the stage machine forbids the move.
        """
        previous = stage.status
        new_status = StageStatus(next_stage_status(previous, target))
        now = datetime.now(UTC)
        await self._repo.update_status(
            stage,
            new_status,
            started_at=now if new_status == StageStatus.IN_PROGRESS else None,
            completed_at=now if new_status in TERMINAL_STAGE_STATUSES else None,
        )
        logger.info(
            "stage.transitioned",
            order_id=str(stage.order_id),
            stage_id=str(stage.id),
            sequence_no=stage.sequence_no,
            from_status=previous,
            to_status=new_status.value,
        )
        return stage

    async def accept_all(self, order_id: uuid.UUID) -> list[OrderStage]:
        """Accept every pending stage of an order.

        All transitions are validated before any row is touched, so either
        every pending stage moves or none does.
        """
        pending = [
            stage
            for stage in await self._repo.get_by_order(order_id)
            if stage.status == StageStatus.PENDING.value
        ]
        for stage in pending:
            next_stage_status(stage.status, StageStatus.ACCEPTED)
        for stage in pending:
            await self.transition(stage, StageStatus.ACCEPTED)
        return pending

    async def fail_open_stages(self, order_id: uuid.UUID) -> list[OrderStage]:
        """Fail every stage that has not reached a terminal status."""
        failed = []
        for stage in await self._repo.get_by_order(order_id):
            if stage.status in TERMINAL_STAGE_STATUSES:
                continue
            failed.append(await self.transition(stage, StageStatus.FAILED))
        return failed

    async def all_completed(self, order_id: uuid.UUID) -> bool:
        stages = await self._repo.get_by_order(order_id)
        return bool(stages) and all(s.status == StageStatus.COMPLETED.value for s in stages)
