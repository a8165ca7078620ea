"""
Recording Implementations Package

Exposes concrete implementations of recording interfaces.
"""

from recording.implementations.ffmpeg_backend import FFmpegCaptureBackend
from recording.implementations.mock_backend import MockCaptureBackend

# Public API
__all__ = [
    "FFmpegCaptureBackend",
    "MockCaptureBackend",
]
