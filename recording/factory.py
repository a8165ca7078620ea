"""
Recording Factory

Factory pattern for creating capture backends.
Automatically selects real or mock capture based on availability.

Single place to decide implementation.
"""

import glob
import logging
import shutil
from typing import Literal, Optional

from config.settings import VIDEO_DEVICE_GLOB
from core.event_bus import EventBus
from recording.implementations.ffmpeg_backend import FFmpegCaptureBackend
from recording.implementations.mock_backend import MockCaptureBackend
from recording.interfaces.capture_backend_interface import CaptureBackend

# Type alias for better type hints
CaptureMode = Literal["auto", "real", "mock"]


class RecordingFactory:
    """
    Factory for creating capture backend implementations.

    Usage:
        # Auto-detect (uses FFmpeg if available, mock otherwise)
        backend = RecordingFactory.create_backend()

        # Force mock mode (useful for testing)
        backend = RecordingFactory.create_backend(mode="mock")

        # Force real capture (raises error if not available)
        backend = RecordingFactory.create_backend(mode="real")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_backend(
        cls,
        mode: CaptureMode = "auto",
        event_bus: Optional[EventBus] = None,
    ) -> CaptureBackend:
        """
        Create a capture backend instance.

        Args:
            mode: "auto" (detect), "real" (force FFmpeg), "mock" (force mock)
            event_bus: Bus the backend publishes lifecycle events on

        Returns:
            CaptureBackend implementation

        Raises:
            RuntimeError: If mode="real" but FFmpeg or a camera is missing
            ValueError: Unknown mode
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Capture Backend")
            return MockCaptureBackend(event_bus)

        if mode == "real":
            backend = FFmpegCaptureBackend(event_bus)
            if not backend.is_available():
                raise RuntimeError(
                    "Real capture requested but not available: FFmpeg or camera missing",
                )
            cls._logger.info("Creating FFmpeg Capture Backend (forced)")
            return backend

        if mode != "auto":
            raise ValueError(f"Unknown capture mode: {mode}")

        backend = FFmpegCaptureBackend(event_bus)
        if backend.is_available():
            cls._logger.info("Creating FFmpeg Capture Backend (auto-detected)")
            return backend

        cls._logger.warning("FFmpeg or camera not available, using Mock Capture Backend")
        return MockCaptureBackend(event_bus)

    @classmethod
    def is_real_capture_available(cls) -> dict:
        """
        Check if real capture is available.

        Useful for diagnostics and configuration display.

        Returns:
            {'ffmpeg': bool, 'camera': bool}
        """
        return {
            "ffmpeg": shutil.which("ffmpeg") is not None,
            "camera": bool(glob.glob(VIDEO_DEVICE_GLOB)),
        }


# Convenience function for quick creation

def create_backend(force_mock: bool = False, event_bus: Optional[EventBus] = None) -> CaptureBackend:
    """
    Quick backend creation.

    Example:
        # Normal usage
        backend = create_backend()

        # Tests
        backend = create_backend(force_mock=True)
    """
    mode = "mock" if force_mock else "auto"
    return RecordingFactory.create_backend(mode=mode, event_bus=event_bus)
