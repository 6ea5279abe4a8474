import pytest

from leadflow.services.followup_state import (
    FollowUpState,
    InvalidTransitionError,
    arm,
    can_transition,
    cancel,
    start_firing,
    transition,
)


class TestValidTransitions:
    def test_idle_to_scheduled(self):
        assert arm(FollowUpState.IDLE) == FollowUpState.SCHEDULED

    def test_scheduled_to_firing(self):
        assert start_firing(FollowUpState.SCHEDULED) == FollowUpState.FIRING

    def test_scheduled_to_cancelled(self):
        assert cancel(FollowUpState.SCHEDULED) == FollowUpState.CANCELLED


class TestInvalidTransitions:
    def test_idle_cannot_fire(self):
        with pytest.raises(InvalidTransitionError):
            start_firing(FollowUpState.IDLE)

    def test_firing_cannot_be_cancelled(self):
        with pytest.raises(InvalidTransitionError):
            cancel(FollowUpState.FIRING)

    def test_cancelled_cannot_be_rearmed(self):
        with pytest.raises(InvalidTransitionError):
            transition(FollowUpState.CANCELLED, FollowUpState.SCHEDULED)

    def test_error_message(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            cancel(FollowUpState.IDLE)
        assert "idle -> cancelled" in str(exc_info.value)


class TestHelpers:
    def test_can_transition(self):
        assert can_transition(FollowUpState.IDLE, FollowUpState.SCHEDULED) is True
        assert can_transition(FollowUpState.IDLE, FollowUpState.FIRING) is False
