"""
Recording Interfaces Package

Exposes abstract interfaces for recording components.
"""

from recording.interfaces.capture_backend_interface import (
    CaptureBackend,
    CaptureError,
    CaptureProcessError,
    DeviceError,
    EnumerationError,
    InputSwitchError,
    classify_device_error,
)

# Public API
__all__ = [
    # Interface
    "CaptureBackend",
    # Exceptions
    "CaptureError",
    "CaptureProcessError",
    "DeviceError",
    "EnumerationError",
    "InputSwitchError",
    "classify_device_error",
]
