"""Stage and Order State Machine Guards.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the API or an executor reports, an illegal transition
(e.g., pending -> completed) will raise TransitionNotAllowed.

The machines are instantiated per record and validate transitions before
the ORM model's status field is updated.

Stage transition table:
    pending      -> accepted      (accept)
    accepted     -> in_progress   (start)
    in_progress  -> completed     (complete)
    pending      -> failed        (fail)
    accepted     -> failed        (fail)
    in_progress  -> failed        (fail)

Order transition table:
    draft            -> payment_pending  (request_payment)
    draft            -> paid             (payment_captured)
    payment_pending  -> paid             (payment_captured)
    paid             -> in_progress      (accept)
    in_progress      -> completed        (complete)
    any non-terminal -> canceled         (cancel)
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from errand_fulfillment.domain.enums import OrderStatus, StageStatus
from errand_fulfillment.domain.exceptions import InvalidStateTransitionError


class _GuardedMachine(StateMachine):
    """Shared start-at-status plumbing for the record-level guards."""

    def __init__(self, current_status: str) -> None:
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        # start_value expects the string value, not the State object
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.name for event in self.allowed_events]


class StageStateMachine(_GuardedMachine):
    """Guards a single fulfillment stage.

    Usage:
        sm = StageStateMachine(current_status="accepted")
        sm.start()      # transitions to in_progress
        sm.status       # "in_progress"
    """

    pending = State(value=StageStatus.PENDING.value, initial=True)
    accepted = State(value=StageStatus.ACCEPTED.value)
    in_progress = State(value=StageStatus.IN_PROGRESS.value)
    completed = State(value=StageStatus.COMPLETED.value, final=True)
    failed = State(value=StageStatus.FAILED.value, final=True)

    accept = pending.to(accepted)
    start = accepted.to(in_progress)
    complete = in_progress.to(completed)
    fail = pending.to(failed) | accepted.to(failed) | in_progress.to(failed)

    def __init__(self, current_status: str = StageStatus.PENDING.value) -> None:
        super().__init__(current_status)


class OrderStateMachine(_GuardedMachine):
    """Guards the order lifecycle around the stage machines."""

    draft = State(value=OrderStatus.DRAFT.value, initial=True)
    payment_pending = State(value=OrderStatus.PAYMENT_PENDING.value)
    paid = State(value=OrderStatus.PAID.value)
    in_progress = State(value=OrderStatus.IN_PROGRESS.value)
    completed = State(value=OrderStatus.COMPLETED.value, final=True)
    canceled = State(value=OrderStatus.CANCELED.value, final=True)

    request_payment = draft.to(payment_pending)
    payment_captured = draft.to(paid) | payment_pending.to(paid)
    accept = paid.to(in_progress)
    complete = in_progress.to(completed)
    cancel = (
        draft.to(canceled)
        | payment_pending.to(canceled)
        | paid.to(canceled)
        | in_progress.to(canceled)
    )

    def __init__(self, current_status: str = OrderStatus.DRAFT.value) -> None:
        super().__init__(current_status)


# Event that moves a stage INTO each status.
STAGE_EVENT_FOR_STATUS: dict[StageStatus, str] = {
    StageStatus.ACCEPTED: "accept",
    StageStatus.IN_PROGRESS: "start",
    StageStatus.COMPLETED: "complete",
    StageStatus.FAILED: "fail",
}


def _fire(sm: _GuardedMachine, event_name: str) -> str:
    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {sm.status}: {sm.get_allowed_events()}"
        )
    event_method()
    return sm.status


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a stage transition and return the new status.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    return _fire(StageStateMachine(current_status=current_status), event_name)


def next_stage_status(current_status: str, target: StageStatus) -> str:
    """Move a stage to `target`, translating guard failures into domain errors."""
    event_name = STAGE_EVENT_FOR_STATUS.get(target)
    if event_name is None:
        raise InvalidStateTransitionError(current_status, target.value)
    try:
        return validate_transition(current_status, event_name)
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(current_status, target.value) from err


def next_order_status(current_status: str, event_name: str) -> str:
    """Fire an order event, translating guard failures into domain errors."""
    try:
        return _fire(OrderStateMachine(current_status=current_status), event_name)
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(current_status, event_name) from err
