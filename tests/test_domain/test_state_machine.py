"""Tests for the stage and order state machine guards.

These tests verify that:
    1. All valid transitions are allowed.
    2. All invalid transitions are blocked.
    3. Terminal states allow nothing.
    4. The helper functions translate guard failures into domain errors.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from errand_fulfillment.domain.enums import StageStatus
from errand_fulfillment.domain.exceptions import InvalidStateTransitionError
from errand_fulfillment.domain.state_machine import (
    OrderStateMachine,
    StageStateMachine,
    next_order_status,
    next_stage_status,
    validate_transition,
)


class TestStageHappyPath:
    def test_full_lifecycle(self) -> None:
        sm = StageStateMachine("pending")
        sm.accept()
        assert sm.status == "accepted"
        sm.start()
        assert sm.status == "in_progress"
        sm.complete()
        assert sm.status == "completed"

    @pytest.mark.parametrize("start", ["pending", "accepted", "in_progress"])
    def test_fail_from_any_open_state(self, start: str) -> None:
        sm = StageStateMachine(start)
        sm.fail()
        assert sm.status == "failed"


class TestStageIllegalTransitions:
    def test_pending_to_completed(self) -> None:
        sm = StageStateMachine("pending")
        with pytest.raises(TransitionNotAllowed):
            sm.complete()

    def test_accepted_to_completed(self) -> None:
        sm = StageStateMachine("accepted")
        with pytest.raises(TransitionNotAllowed):
            sm.complete()

    def test_no_going_back(self) -> None:
        sm = StageStateMachine("in_progress")
        with pytest.raises(TransitionNotAllowed):
            sm.accept()

    @pytest.mark.parametrize("final", ["completed", "failed"])
    def test_terminal_is_final(self, final: str) -> None:
        assert StageStateMachine(final).get_allowed_events() == []


class TestOrderMachine:
    def test_full_lifecycle(self) -> None:
        sm = OrderStateMachine("draft")
        sm.request_payment()
        sm.payment_captured()
        assert sm.status == "paid"
        sm.accept()
        assert sm.status == "in_progress"
        sm.complete()
        assert sm.status == "completed"

    def test_payment_captured_straight_from_draft(self) -> None:
        assert next_order_status("draft", "payment_captured") == "paid"

    @pytest.mark.parametrize("start", ["draft", "payment_pending", "paid", "in_progress"])
    def test_cancel_from_any_open_state(self, start: str) -> None:
        assert next_order_status(start, "cancel") == "canceled"

    def test_accept_requires_paid(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            next_order_status("payment_pending", "accept")

    def test_double_payment_rejected(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            next_order_status("paid", "payment_captured")

    @pytest.mark.parametrize("final", ["completed", "canceled"])
    def test_terminal_is_final(self, final: str) -> None:
        assert OrderStateMachine(final).get_allowed_events() == []


class TestHelpers:
    def test_validate_transition(self) -> None:
        assert validate_transition("accepted", "start") == "in_progress"

    def test_invalid_event_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("accepted", "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            StageStateMachine("INVALID_STATUS")

    def test_next_stage_status(self) -> None:
        assert next_stage_status("in_progress", StageStatus.COMPLETED) == "completed"

    def test_next_stage_status_illegal(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            next_stage_status("pending", StageStatus.COMPLETED)
        assert exc_info.value.current_state == "pending"
        assert exc_info.value.attempted_state == "completed"

    def test_cannot_target_pending(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            next_stage_status("accepted", StageStatus.PENDING)
