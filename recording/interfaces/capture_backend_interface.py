"""
Capture Backend Interface

Abstract interface for capture backends.
Defines the contract that any device/stream provider must follow.

RecordingSession depends on this abstraction, not on FFmpeg directly,
so tests can drive it with MockCaptureBackend.

Two kinds of operations:
- Direct calls that return or raise (enumeration, input switching,
  track enablement)
- Requests whose outcome is published on the EventBus as a lifecycle
  event (acquire_stream -> device_ready/device_error,
  start_record -> start_record, stop_record -> finish_record,
  faults -> error)
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from core.event_bus import EventBus
from recording.constants import DEVICE_ERROR_NAMES, ErrorKind, TrackKind
from recording.models.capture import CaptureConstraints, CaptureStream
from recording.models.device import Device


class CaptureBackend(ABC):
    """
    Abstract base class for capture backends.

    Any implementation (FFmpeg, GStreamer, a browser bridge, etc.)
    must implement all these methods to work with RecordingSession.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self.event_bus = event_bus or EventBus()

    @abstractmethod
    def enumerate_devices(self) -> List[Device]:
        """
        List capture devices (primary enumeration path).

        Returns:
            Devices of both kinds, in backend order

        Raises:
            EnumerationError: If the backend reports an error
        """
        pass

    @abstractmethod
    def probe_devices(self) -> List[Device]:
        """
        Query media devices directly (fallback path).

        Used when the primary enumeration fails or reports nothing
        usable on some platforms.

        Raises:
            EnumerationError: If the probe fails too
        """
        pass

    @abstractmethod
    def acquire_stream(self, constraints: CaptureConstraints) -> None:
        """
        Request a live stream for the given constraints.

        Should be NON-BLOCKING from the session's point of view. The result
        is published as device_ready(stream=...) or
        device_error(error_name=..., request_id=constraints.request_id).
        Several requests may be pending at once; each answer names its own.
        """
        pass

    @abstractmethod
    def release_stream(self, stream: CaptureStream) -> None:
        """
        Stop all tracks of the stream and release the devices.

        Must be safe to call more than once.
        """
        pass

    @abstractmethod
    def start_record(self, stream: CaptureStream) -> None:
        """
        Start recording the live stream.

        Publishes start_record once capture is running.

        Raises:
            CaptureError: If recording cannot start
        """
        pass

    @abstractmethod
    def stop_record(self) -> None:
        """
        Stop recording.

        Publishes finish_record(artifact=...) once the media is finalized.
        """
        pass

    @abstractmethod
    def cancel_record(self) -> None:
        """Abort recording without producing an artifact"""
        pass

    @abstractmethod
    def set_video_input(self, device_id: str) -> None:
        """
        Switch the live video input.

        Raises:
            InputSwitchError: If the backend cannot switch
        """
        pass

    @abstractmethod
    def set_audio_input(self, device_id: str) -> None:
        """
        Switch the live audio input.

        Raises:
            InputSwitchError: If the backend cannot switch
        """
        pass

    @abstractmethod
    def set_track_enabled(self, kind: TrackKind, enabled: bool) -> None:
        """Enable/disable all tracks of a kind on the live stream, in place"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the capture system can be used on this machine"""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """
        Release everything. Called on shutdown.

        This should never raise exceptions.
        """
        pass


class CaptureError(Exception):
    """
    Exception raised for capture backend errors.

    Examples:
    - Camera not found
    - FFmpeg not installed
    - Device already in use
    """
    pass


class DeviceError(CaptureError):
    """Stream acquisition failed; kind tells the user what to do"""

    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind

    @classmethod
    def from_error_name(cls, error_name: Optional[str], message: str = "") -> "DeviceError":
        return cls(classify_device_error(error_name), message or (error_name or ""))


class EnumerationError(CaptureError):
    """Device enumeration failed"""
    pass


class InputSwitchError(CaptureError):
    """Backend could not switch the live input device"""
    pass


class CaptureProcessError(CaptureError):
    """Error in the capture process (FFmpeg crashed, etc.)"""
    pass


def classify_device_error(error_name: Optional[str]) -> ErrorKind:
    """
    Map a backend error name to an ErrorKind.

    Example:
        classify_device_error("NotAllowedError") -> ErrorKind.NOT_ALLOWED
        classify_device_error(None) -> ErrorKind.UNKNOWN
    """
    if not error_name:
        return ErrorKind.UNKNOWN
    return DEVICE_ERROR_NAMES.get(error_name, ErrorKind.UNKNOWN)
