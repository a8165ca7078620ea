"""
Core utilities and modules.

Public API:
    - StateMachine: Transition-table state machine with a single dispatch entry
    - InvalidStateError: Raised for events not allowed in the current state
    - EventBus: Named-event publish/subscribe

Usage:
    from core import EventBus

    bus = EventBus()
    bus.subscribe("device_ready", lambda stream: print(stream))
    bus.publish("device_ready", stream=stream)
"""

from core.event_bus import EventBus
from core.state_machine import InvalidStateError, StateMachine

__all__ = [
    "EventBus",
    "InvalidStateError",
    "StateMachine",
]
