"""
Recording Models Package

Data structures shared by the session, registry and backends.
"""

from recording.models.artifact import RecordingArtifact
from recording.models.capture import CaptureConstraints, CaptureStream, TrackToggles
from recording.models.device import Device

# Public API
__all__ = [
    "CaptureConstraints",
    "CaptureStream",
    "Device",
    "RecordingArtifact",
    "TrackToggles",
]
