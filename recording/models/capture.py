"""
Capture Models

Constraints passed to the backend, the live stream handle the session
owns, and the per-session track toggles.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from uuid import uuid4

from config.settings import (
    CAPTURE_AUDIO,
    CAPTURE_VIDEO,
    DEFAULT_MIRRORED,
    MAX_RECORDING_LENGTH,
    MIRROR_CAPTURE,
)
from recording.constants import TrackKind


@dataclass(frozen=True)
class CaptureConstraints:
    """What the session asks the backend to acquire"""

    width: int
    height: int
    audio: bool = CAPTURE_AUDIO
    video: bool = CAPTURE_VIDEO
    video_device_id: Optional[str] = None
    audio_device_id: Optional[str] = None
    max_length: float = MAX_RECORDING_LENGTH
    mirror_capture: bool = MIRROR_CAPTURE
    # Identifies the acquire_stream() call; answers carry it back
    request_id: str = field(default_factory=lambda: uuid4().hex[:12])

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class CaptureStream:
    """
    Handle to a live capture stream.

    Owned by the RecordingSession that acquired it; backends receive it
    by reference.
    """

    constraints: CaptureConstraints
    id: str = field(default_factory=lambda: f"stream_{uuid4().hex[:12]}")
    tracks_enabled: Dict[TrackKind, bool] = field(
        default_factory=lambda: {TrackKind.AUDIO: True, TrackKind.VIDEO: True},
    )
    active: bool = True

    def is_track_enabled(self, kind: TrackKind) -> bool:
        return self.tracks_enabled.get(kind, False)


@dataclass
class TrackToggles:
    """User toggles for the live session"""

    microphone_muted: bool = False
    camera_stopped: bool = False
    mirrored: bool = DEFAULT_MIRRORED

    def reset_tracks(self) -> None:
        """Clear mute/camera-stop; mirroring is a user preference and stays"""
        self.microphone_muted = False
        self.camera_stopped = False

    def to_dict(self) -> dict:
        return {
            "microphone_muted": self.microphone_muted,
            "camera_stopped": self.camera_stopped,
            "mirrored": self.mirrored,
        }
