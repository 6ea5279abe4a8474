from enum import Enum


class FollowUpState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    FIRING = "firing"
    CANCELLED = "cancelled"


VALID_TRANSITIONS = {
    FollowUpState.IDLE: [FollowUpState.SCHEDULED],
    FollowUpState.SCHEDULED: [FollowUpState.FIRING, FollowUpState.CANCELLED],
    FollowUpState.FIRING: [],
    FollowUpState.CANCELLED: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: FollowUpState, to_state: FollowUpState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: FollowUpState, to_state: FollowUpState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: FollowUpState, to_state: FollowUpState) -> FollowUpState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def arm(current_state: FollowUpState) -> FollowUpState:
    return transition(current_state, FollowUpState.SCHEDULED)


def start_firing(current_state: FollowUpState) -> FollowUpState:
    """Timer elapsed; the follow-up can no longer be cancelled."""
    return transition(current_state, FollowUpState.FIRING)


def cancel(current_state: FollowUpState) -> FollowUpState:
    return transition(current_state, FollowUpState.CANCELLED)
