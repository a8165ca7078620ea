"""
Mock Playback Implementation

Simulated player for driving the overlay editor without a real video
surface. Time only moves when seek() or advance() is called.
"""

import logging
from typing import List, Optional, Tuple

from overlay.interfaces.playback_surface_interface import (
    PlaybackSurface,
    TimeAdvancedCallback,
)


class MockPlayback(PlaybackSurface):
    """
    Mock playback surface for testing.

    Usage:
        playback = MockPlayback(duration_sec=10.0, frame_size=(640, 360))
        playback.subscribe_time_advanced(lambda t: print(t))
        playback.seek(2.5)      # prints 2.5
        playback.advance(1.0)   # prints 3.5
    """

    def __init__(self, duration_sec: float, frame_size: Optional[Tuple[int, int]] = None):
        self.logger = logging.getLogger(__name__)
        self._duration_sec = float(duration_sec)
        self._frame_size = frame_size
        self._current_time_sec = 0.0
        self._callbacks: List[TimeAdvancedCallback] = []

        self.seek_calls = 0

    @property
    def current_time_sec(self) -> float:
        return self._current_time_sec

    @property
    def duration_sec(self) -> float:
        return self._duration_sec

    @property
    def frame_size(self) -> Optional[Tuple[int, int]]:
        return self._frame_size

    def subscribe_time_advanced(self, callback: TimeAdvancedCallback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unsubscribe_time_advanced(self, callback: TimeAdvancedCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def seek(self, time_sec: float) -> float:
        """
        Jump to a position (clamped to the media) and notify subscribers.

        Returns:
            The new current time
        """
        self.seek_calls += 1
        self._current_time_sec = min(max(0.0, float(time_sec)), self._duration_sec)
        self.logger.debug(f"[MOCK] Playback at {self._current_time_sec:.2f}s")

        for callback in list(self._callbacks):
            try:
                callback(self._current_time_sec)
            except Exception as e:
                self.logger.error(f"Error in time advanced callback: {e}")

        return self._current_time_sec

    def advance(self, delta_sec: float) -> float:
        """Play forward by delta_sec"""
        return self.seek(self._current_time_sec + delta_sec)

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)
