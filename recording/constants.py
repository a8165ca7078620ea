"""
Recording Constants

Enums, event names, presets and user-facing messages for the capture
session. Tunable values (lengths, delays, codecs) live in config/settings.py.
"""

from enum import Enum
from typing import Dict, Tuple

from config.settings import EDITOR_BASE_SIZE

# =============================================================================
# SESSION STATE TRACKING
# =============================================================================


class SessionState(Enum):
    """
    States a recording session can be in.

    Lifecycle: IDLE -> AWAITING_DEVICE -> READY -> RECORDING -> FINISHED
    ERROR is terminal for the current attempt until reset.
    """

    IDLE = "idle"  # Nothing acquired
    AWAITING_DEVICE = "awaiting_device"  # Waiting for camera/mic permission
    READY = "ready"  # Live stream available, not recording
    RECORDING = "recording"  # Actively recording
    FINISHED = "finished"  # Artifact produced
    ERROR = "error"  # Device or capture failure


class SessionEvent(Enum):
    """Events accepted by the session state machine"""

    INITIALIZE = "initialize"
    DEVICE_READY = "device_ready"
    DEVICE_ERROR = "device_error"
    START_RECORDING = "start_recording"
    FINISH_RECORD = "finish_record"
    CAPTURE_ERROR = "capture_error"
    RESET = "reset"


SESSION_TRANSITIONS: Dict[Tuple[SessionState, SessionEvent], SessionState] = {
    (SessionState.IDLE, SessionEvent.INITIALIZE): SessionState.AWAITING_DEVICE,
    (SessionState.AWAITING_DEVICE, SessionEvent.DEVICE_READY): SessionState.READY,
    (SessionState.AWAITING_DEVICE, SessionEvent.DEVICE_ERROR): SessionState.ERROR,
    (SessionState.READY, SessionEvent.START_RECORDING): SessionState.RECORDING,
    (SessionState.RECORDING, SessionEvent.FINISH_RECORD): SessionState.FINISHED,
    (SessionState.RECORDING, SessionEvent.CAPTURE_ERROR): SessionState.ERROR,
    (SessionState.AWAITING_DEVICE, SessionEvent.RESET): SessionState.IDLE,
    (SessionState.READY, SessionEvent.RESET): SessionState.IDLE,
    (SessionState.RECORDING, SessionEvent.RESET): SessionState.IDLE,
    (SessionState.FINISHED, SessionEvent.RESET): SessionState.IDLE,
    (SessionState.ERROR, SessionEvent.RESET): SessionState.IDLE,
}

# States in which device switching and track toggles are allowed
LIVE_STATES = (SessionState.READY, SessionState.RECORDING)


# =============================================================================
# BACKEND EVENT NAMES
# =============================================================================
# Published by capture backends on the EventBus


class BackendEvent:
    DEVICE_READY = "device_ready"  # kwargs: stream (stream.constraints.request_id)
    DEVICE_ERROR = "device_error"  # kwargs: error_name, request_id
    START_RECORD = "start_record"  # no kwargs
    FINISH_RECORD = "finish_record"  # kwargs: artifact
    ERROR = "error"  # kwargs: message


# =============================================================================
# DEVICES
# =============================================================================


class DeviceKind(Enum):
    """Capture device kinds (names match MediaDeviceInfo.kind)"""

    VIDEO_INPUT = "videoinput"
    AUDIO_INPUT = "audioinput"


class TrackKind(Enum):
    """Media track kinds on a live stream"""

    AUDIO = "audio"
    VIDEO = "video"


# =============================================================================
# ERROR CODES
# =============================================================================


class ErrorKind(Enum):
    """
    Device failure classes.

    Used for the user-facing message shown when the session errors out.
    """

    NOT_FOUND = "not_found"
    NOT_ALLOWED = "not_allowed"
    NOT_READABLE = "not_readable"
    UNKNOWN = "unknown"


# Backend error names (DOMException names) mapped to error kinds
DEVICE_ERROR_NAMES: Dict[str, ErrorKind] = {
    "NotFoundError": ErrorKind.NOT_FOUND,
    "DevicesNotFoundError": ErrorKind.NOT_FOUND,
    "OverconstrainedError": ErrorKind.NOT_FOUND,
    "NotAllowedError": ErrorKind.NOT_ALLOWED,
    "PermissionDeniedError": ErrorKind.NOT_ALLOWED,
    "SecurityError": ErrorKind.NOT_ALLOWED,
    "NotReadableError": ErrorKind.NOT_READABLE,
    "TrackStartError": ErrorKind.NOT_READABLE,
}

ERROR_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: (
        "Camera or microphone not found. "
        "Please check your devices and refresh the page."
    ),
    ErrorKind.NOT_ALLOWED: (
        "Camera or microphone access denied. "
        "Please allow permissions and refresh."
    ),
    ErrorKind.NOT_READABLE: (
        "Device is being used by another application. "
        "Please close other apps using your camera/microphone."
    ),
    ErrorKind.UNKNOWN: "Device error occurred",
}

DEVICE_UNAVAILABLE_MESSAGE = (
    "Selected {kind} device is no longer available. "
    "Please refresh and try again."
)
INPUT_SWITCH_FAILED_MESSAGE = (
    "Failed to change {kind} input device. "
    "Please check if the device is available and try again."
)
ENUMERATION_FAILED_MESSAGE = "Failed to refresh device list. Please reload the page."


# =============================================================================
# ASPECT RATIO PRESETS
# =============================================================================


class AspectRatio(Enum):
    """Capture surface presets"""

    LANDSCAPE = "16:9"
    SQUARE = "1:1"
    PORTRAIT = "9:16"


# Capture dimensions (width, height) in pixels
ASPECT_RATIO_DIMENSIONS: Dict[AspectRatio, Tuple[int, int]] = {
    AspectRatio.LANDSCAPE: (320, 180),
    AspectRatio.SQUARE: (320, 320),
    AspectRatio.PORTRAIT: (180, 320),
}


def get_capture_dimensions(ratio: AspectRatio) -> Tuple[int, int]:
    """
    Get capture width/height for an aspect ratio preset.

    Example:
        get_capture_dimensions(AspectRatio.SQUARE) -> (320, 320)
    """
    return ASPECT_RATIO_DIMENSIONS[ratio]


def get_editor_dimensions(ratio: AspectRatio) -> Tuple[int, int]:
    """
    Get overlay editor player width/height for an aspect ratio preset.

    The editor plays back at twice the base size along the long side.

    Example:
        get_editor_dimensions(AspectRatio.LANDSCAPE) -> (640, 360)
    """
    long_side = EDITOR_BASE_SIZE * 2
    short_side = int(long_side * 9 / 16)

    if ratio == AspectRatio.SQUARE:
        return long_side, long_side
    if ratio == AspectRatio.PORTRAIT:
        return short_side, long_side
    return long_side, short_side


def parse_aspect_ratio(value) -> AspectRatio:
    """
    Convert "16:9" style strings (or AspectRatio) to AspectRatio.

    Raises:
        ValueError: If the value is not one of the presets
    """
    if isinstance(value, AspectRatio):
        return value
    try:
        return AspectRatio(str(value).strip())
    except ValueError:
        valid = ", ".join(ratio.value for ratio in AspectRatio)
        raise ValueError(f"Unknown aspect ratio: {value} (expected one of {valid})")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Example:
        format_duration(90) -> "1:30"
        format_duration(120) -> "2:00"
    """
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
