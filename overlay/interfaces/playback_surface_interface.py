"""
Playback Surface Interface

Abstract interface for the video player the overlay editor is bound to.
The editor only needs the current time, the duration and a notification
whenever playback time advances (or is sought).
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Tuple

TimeAdvancedCallback = Callable[[float], None]


class PlaybackSurface(ABC):
    """
    Abstract base class for playback surfaces.

    Callbacks receive the new current time in seconds.
    """

    @property
    @abstractmethod
    def current_time_sec(self) -> float:
        """Current playback position in seconds"""
        pass

    @property
    @abstractmethod
    def duration_sec(self) -> float:
        """Length of the loaded media in seconds"""
        pass

    @property
    def frame_size(self) -> Optional[Tuple[int, int]]:
        """Player width/height in pixels (None = not known)"""
        return None

    @abstractmethod
    def subscribe_time_advanced(self, callback: TimeAdvancedCallback) -> None:
        pass

    @abstractmethod
    def unsubscribe_time_advanced(self, callback: TimeAdvancedCallback) -> None:
        pass
