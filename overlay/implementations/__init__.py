"""
Overlay Implementations Package
"""

from overlay.implementations.mock_playback import MockPlayback

# Public API
__all__ = [
    "MockPlayback",
]
