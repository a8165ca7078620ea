"""
Overlay Interfaces Package
"""

from overlay.interfaces.playback_surface_interface import (
    PlaybackSurface,
    TimeAdvancedCallback,
)

# Public API
__all__ = [
    "PlaybackSurface",
    "TimeAdvancedCallback",
]
