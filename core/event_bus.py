import logging
import threading
from typing import Any, Callable, Dict, List


class EventBus:
    """
    Named-event publish/subscribe.

    Handlers run synchronously on the publishing thread, in subscription
    order. A failing handler is logged and does not stop the others.
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable[..., Any]]] = {}
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a handler for event_type"""
        with self._lock:
            handlers = self.subscribers.setdefault(event_type, [])
            if callback not in handlers:
                handlers.append(callback)
        self.logger.debug(f"Subscribed to {event_type}")

    def unsubscribe(self, event_type: str, callback: Callable[..., Any]) -> bool:
        """
        Remove a handler.

        Returns:
            True if the handler was registered, False otherwise
        """
        with self._lock:
            handlers = self.subscribers.get(event_type, [])
            if callback not in handlers:
                return False
            handlers.remove(callback)
            return True

    def publish(self, event_type: str, **data: Any) -> int:
        """
        Send an event to its subscribers.

        Returns:
            Number of handlers that were called
        """
        with self._lock:
            handlers = list(self.subscribers.get(event_type, []))

        self.logger.debug(f"Publishing {event_type} to {len(handlers)} handler(s)")

        for handler in handlers:
            try:
                handler(**data)
            except Exception as e:
                self.logger.error(f"Error in {event_type} handler: {e}", exc_info=True)

        return len(handlers)

    def has_subscribers(self, event_type: str) -> bool:
        with self._lock:
            return bool(self.subscribers.get(event_type))

    def clear(self) -> None:
        """Drop all subscriptions"""
        with self._lock:
            self.subscribers.clear()
