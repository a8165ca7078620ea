"""
Recording Controllers Package

High-level controllers that drive capture backends.
"""

from recording.controllers.device_registry import DeviceNotFoundError, DeviceRegistry
from recording.controllers.recording_session import RecordingSession

# Public API
__all__ = [
    "DeviceNotFoundError",
    "DeviceRegistry",
    "RecordingSession",
]
