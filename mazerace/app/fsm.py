"""Finite State Machine for per-actor control modes."""

from enum import Enum, auto
from typing import Dict, Callable, Optional, Any


class ControlState(Enum):
    """How an actor currently decides its next move."""
    PLANNED = auto()  # following a precomputed direction queue
    LEARNED = auto()  # no plan; the learned policy chooses


class ControlStateMachine:
    """
    State machine for an actor's decision mode.

    State Transitions:
    PLANNED -> LEARNED (when the plan queue empties)
    PLANNED -> PLANNED (when a fresh plan replaces the current one)
    LEARNED -> PLANNED (when a fresh plan is computed)
    """

    def __init__(self, initial_state: ControlState = ControlState.LEARNED):
        self.current_state = initial_state
        self._enter_callbacks: Dict[ControlState, Callable[[Optional[Dict]], None]] = {}

        # Define valid state transitions
        self._valid_transitions = {
            ControlState.PLANNED: {ControlState.PLANNED, ControlState.LEARNED},
            ControlState.LEARNED: {ControlState.PLANNED},
        }

    def on_state_enter(self, state: ControlState, callback: Callable[[Optional[Dict]], None]):
        """Register callback for state entry."""
        self._enter_callbacks[state] = callback

    def can_transition(self, to_state: ControlState) -> bool:
        """Check if transition to target state is valid."""
        return to_state in self._valid_transitions.get(self.current_state, set())

    def transition(self, to_state: ControlState, context: Optional[Dict[str, Any]] = None) -> bool:
        """Attempt to transition to target state."""
        if not self.can_transition(to_state):
            return False

        self.current_state = to_state

        if to_state in self._enter_callbacks:
            self._enter_callbacks[to_state](context)

        return True

    # Convenience methods for common transitions

    def follow_plan(self, context: Optional[Dict] = None) -> bool:
        """Enter (or re-enter) plan-following mode."""
        return self.transition(ControlState.PLANNED, context)

    def fall_back_to_policy(self, context: Optional[Dict] = None) -> bool:
        """Hand control to the learned policy."""
        return self.transition(ControlState.LEARNED, context)

    def is_planned(self) -> bool:
        return self.current_state == ControlState.PLANNED
