import logging
import time
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Tuple


class InvalidStateError(Exception):
    """Operation or event is not legal in the current state"""

    def __init__(self, message: str, state: Optional[Enum] = None, event: Optional[Enum] = None):
        super().__init__(message)
        self.state = state
        self.event = event


class StateMachine:
    """
    Transition-table state machine.

    Every change of state goes through dispatch(). Pairs missing from the
    table are rejected with InvalidStateError instead of being tolerated.

    Usage:
        machine = StateMachine(
            initial=State.IDLE,
            transitions={(State.IDLE, Event.START): State.RUNNING},
        )
        machine.dispatch(Event.START)
    """

    def __init__(
        self,
        initial: Enum,
        transitions: Dict[Tuple[Enum, Enum], Enum],
        name: str = "state machine",
    ):
        self.current_state = initial
        self.previous_state: Optional[Enum] = None
        self.state_start_time = time.time()
        self.name = name
        self.logger = logging.getLogger(__name__)

        self._transitions = dict(transitions)

        # Called after every successful transition
        self.on_state_change: Optional[Callable[[Enum, Enum], None]] = None

        self.logger.debug(f"{name} initialized in {initial.value} state")

    def get_current_state(self) -> Enum:
        """Get the current state"""
        return self.current_state

    def get_state_duration(self) -> float:
        """Get how long we've been in the current state (seconds)"""
        return time.time() - self.state_start_time

    def can_dispatch(self, event: Enum) -> bool:
        """Check if event is legal in the current state"""
        return (self.current_state, event) in self._transitions

    def allowed_events(self) -> Iterable[Enum]:
        """Events accepted in the current state"""
        return [
            event for (state, event) in self._transitions
            if state == self.current_state
        ]

    def dispatch(self, event: Enum, reason: str = "") -> Enum:
        """
        Apply event to the current state.

        Args:
            event: Event to apply
            reason: Optional text for the log line

        Returns:
            The new state

        Raises:
            InvalidStateError: If the table has no transition for
                (current state, event)
        """
        key = (self.current_state, event)
        if key not in self._transitions:
            raise InvalidStateError(
                f"{self.name}: {event.value} not allowed in state "
                f"{self.current_state.value}",
                state=self.current_state,
                event=event,
            )

        old_state = self.current_state
        new_state = self._transitions[key]

        self.previous_state = old_state
        self.current_state = new_state
        self.state_start_time = time.time()

        log_msg = (
            f"{self.name}: {old_state.value} -> {new_state.value} "
            f"({event.value})"
        )
        if reason:
            log_msg += f" - {reason}"
        self.logger.info(log_msg)

        # Notify listener of state change
        if self.on_state_change:
            try:
                self.on_state_change(old_state, new_state)
            except Exception as e:
                self.logger.error(f"Error in state change callback: {e}")

        return new_state

    def get_status_info(self) -> Dict:
        """Get detailed status information for debugging/monitoring"""
        return {
            "current_state": self.current_state.value,
            "previous_state": (
                self.previous_state.value if self.previous_state else None
            ),
            "state_duration": self.get_state_duration(),
            "allowed_events": [event.value for event in self.allowed_events()],
        }
