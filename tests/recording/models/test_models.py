"""
Recording Model Tests

Tests for the recording data structures:
- Device labels
- Artifact metadata and immutability
- Capture constraints and stream handles
- Track toggle reset rules

To run:
    pytest tests/recording/models/test_models.py -v
"""

import dataclasses

import pytest

from recording.constants import DeviceKind, TrackKind
from recording.models.artifact import RecordingArtifact
from recording.models.capture import CaptureConstraints, CaptureStream, TrackToggles
from recording.models.device import Device

# =============================================================================
# DEVICE TESTS
# =============================================================================


@pytest.mark.unit
def test_device_display_label():
    """Test labels fall back to a kind prefix and shortened id."""
    named = Device("abc", DeviceKind.VIDEO_INPUT, "Front Camera")
    camera = Device("0123456789abcdef", DeviceKind.VIDEO_INPUT)
    microphone = Device("fedcba9876543210", DeviceKind.AUDIO_INPUT)

    assert named.display_label == "Front Camera"
    assert camera.display_label == "Camera 01234567..."
    assert microphone.display_label == "Microphone fedcba98..."


@pytest.mark.unit
def test_device_is_immutable():
    """Test devices cannot be edited in place."""
    device = Device("abc", DeviceKind.AUDIO_INPUT)

    with pytest.raises(dataclasses.FrozenInstanceError):
        device.label = "changed"


# =============================================================================
# ARTIFACT TESTS
# =============================================================================


@pytest.mark.unit
def test_artifact_metadata():
    """Test size, extension and metadata dict."""
    artifact = RecordingArtifact(data=b"12345", duration_sec=4.5)

    assert artifact.size_bytes == 5
    assert artifact.extension == "webm"
    metadata = artifact.to_dict()
    assert metadata["duration_sec"] == 4.5
    assert metadata["size_bytes"] == 5
    assert "data" not in metadata


@pytest.mark.unit
def test_artifact_rejects_negative_duration():
    """Test durations cannot be negative."""
    with pytest.raises(ValueError):
        RecordingArtifact(data=b"", duration_sec=-1)


@pytest.mark.unit
def test_artifact_is_immutable():
    """Test the artifact can be shared by reference safely."""
    artifact = RecordingArtifact(data=b"x")

    with pytest.raises(dataclasses.FrozenInstanceError):
        artifact.data = b"y"


# =============================================================================
# CAPTURE TESTS
# =============================================================================


@pytest.mark.unit
def test_constraints_resolution():
    """Test resolution string."""
    assert CaptureConstraints(width=320, height=180).resolution == "320x180"


@pytest.mark.unit
def test_stream_starts_with_tracks_enabled():
    """Test new streams are active with both tracks on."""
    stream = CaptureStream(constraints=CaptureConstraints(width=320, height=320))

    assert stream.active is True
    assert stream.is_track_enabled(TrackKind.AUDIO) is True
    assert stream.is_track_enabled(TrackKind.VIDEO) is True
    assert stream.id.startswith("stream_")


@pytest.mark.unit
def test_track_toggles_reset_keeps_mirror():
    """Test reset clears mute and camera-stop only."""
    toggles = TrackToggles(microphone_muted=True, camera_stopped=True, mirrored=False)

    toggles.reset_tracks()

    assert toggles.to_dict() == {
        "microphone_muted": False,
        "camera_stopped": False,
        "mirrored": False,
    }
