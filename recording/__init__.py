"""
Recording Module

Camera/microphone capture session: device permission, live stream,
recording with auto-stop, artifact hand-off.

Provides automatic detection and graceful fallback between real FFmpeg
capture and a mock backend for testing.

Public API:
    - RecordingSession: Session state machine with callbacks
    - DeviceRegistry: Device lists and selection
    - RecordingFactory: Factory for creating capture backends
    - create_backend: Quick backend creation with auto-detection
    - CaptureBackend: Backend contract
    - SessionState / ErrorKind / AspectRatio: Enumerations
    - SessionConfig: YAML session settings

Usage:
    from recording import RecordingSession, create_backend

    backend = create_backend()
    session = RecordingSession(backend)

    session.on_complete = lambda artifact: print(artifact)
    session.initialize()
    session.start_recording()
"""

from recording.config import SessionConfig
from recording.constants import AspectRatio, DeviceKind, ErrorKind, SessionState
from recording.controllers.device_registry import DeviceNotFoundError, DeviceRegistry
from recording.controllers.recording_session import RecordingSession
from recording.factory import RecordingFactory, create_backend
from recording.interfaces.capture_backend_interface import (
    CaptureBackend,
    CaptureError,
    EnumerationError,
    InputSwitchError,
)
from recording.models.artifact import RecordingArtifact
from recording.models.device import Device
from recording.utils.recording_utils import export_artifact, generate_filename

__all__ = [
    "AspectRatio",
    "CaptureBackend",
    "CaptureError",
    "Device",
    "DeviceKind",
    "DeviceNotFoundError",
    "DeviceRegistry",
    "EnumerationError",
    "ErrorKind",
    "InputSwitchError",
    "RecordingArtifact",
    "RecordingFactory",
    "RecordingSession",
    "SessionConfig",
    "SessionState",
    "create_backend",
    "export_artifact",
    "generate_filename",
]
