"""
FFmpeg Capture Backend Tests

Tests for the FFmpeg backend that run without FFmpeg or cameras:
- Parsing of v4l2-ctl and pactl listings
- FFmpeg command construction
- Error classification
- Enumeration and fallback enumeration with patched system calls

To run:
    pytest tests/recording/implementations/test_ffmpeg_backend.py -v
"""

import shutil

import pytest

from recording.constants import DeviceKind, TrackKind
from recording.implementations import ffmpeg_backend
from recording.implementations.ffmpeg_backend import (
    FFmpegCaptureBackend,
    build_ffmpeg_command,
    classify_ffmpeg_error,
    parse_pactl_sources,
    parse_v4l2_devices,
)
from recording.interfaces.capture_backend_interface import (
    CaptureError,
    EnumerationError,
    InputSwitchError,
)
from recording.models.capture import CaptureConstraints

V4L2_OUTPUT = """\
HD Webcam C525 (usb-0000:01:00.0-1.2):
\t/dev/video0
\t/dev/video1
\t/dev/media0

bcm2835-codec-decode (platform:bcm2835-codec):
\t/dev/video10
"""

PACTL_OUTPUT = (
    "0\talsa_output.platform-bcm2835.monitor\tmodule-alsa-card.c\ts16le 2ch 44100Hz\tSUSPENDED\n"
    "1\talsa_input.usb-046d_HD_Webcam_C525.mono\tmodule-alsa-card.c\ts16le 1ch 48000Hz\tIDLE\n"
)


@pytest.fixture
def backend(event_bus):
    ffmpeg = FFmpegCaptureBackend(event_bus)
    yield ffmpeg
    ffmpeg.cleanup()


# =============================================================================
# PARSING TESTS
# =============================================================================


@pytest.mark.unit
def test_parse_v4l2_devices():
    """Test one capture node per card, labelled with the card name."""
    devices = parse_v4l2_devices(V4L2_OUTPUT)

    assert [d.id for d in devices] == ["/dev/video0", "/dev/video10"]
    assert devices[0].label == "HD Webcam C525"
    assert all(d.kind == DeviceKind.VIDEO_INPUT for d in devices)


@pytest.mark.unit
def test_parse_pactl_sources_skips_monitors():
    """Test output monitors are not offered as microphones."""
    devices = parse_pactl_sources(PACTL_OUTPUT)

    assert [d.id for d in devices] == ["alsa_input.usb-046d_HD_Webcam_C525.mono"]
    assert devices[0].kind == DeviceKind.AUDIO_INPUT


@pytest.mark.unit
def test_parse_empty_output():
    """Test empty tool output yields no devices."""
    assert parse_v4l2_devices("") == []
    assert parse_pactl_sources("") == []


@pytest.mark.unit
@pytest.mark.parametrize(
    "stderr, expected",
    [
        ("/dev/video0: Device or resource busy", "NotReadableError"),
        ("/dev/video0: Permission denied", "NotAllowedError"),
        ("/dev/video9: No such file or directory", "NotFoundError"),
        ("Unknown encoder 'libvpx'", None),
    ],
)
def test_classify_ffmpeg_error(stderr, expected):
    """Test FFmpeg stderr is mapped to device error names."""
    assert classify_ffmpeg_error(stderr) == expected


# =============================================================================
# COMMAND TESTS
# =============================================================================


@pytest.mark.unit
def test_build_command_basics():
    """Test inputs, size, length limit and output file."""
    constraints = CaptureConstraints(
        width=320,
        height=180,
        video_device_id="/dev/video2",
        audio_device_id="mic",
        max_length=120,
    )

    command = build_ffmpeg_command(constraints, "/tmp/out.webm")

    assert command[0] == "ffmpeg"
    assert command[command.index("-video_size") + 1] == "320x180"
    assert "/dev/video2" in command
    assert "mic" in command
    assert command[command.index("-t") + 1] == "120"
    assert command[-1] == "/tmp/out.webm"
    assert "hflip" not in command[command.index("-vf") + 1]


@pytest.mark.unit
def test_build_command_mirror_capture():
    """Test hflip is only added when mirroring is baked in."""
    constraints = CaptureConstraints(width=180, height=320, mirror_capture=True)

    command = build_ffmpeg_command(constraints, "out.webm")

    assert command[command.index("-vf") + 1].endswith(",hflip")


@pytest.mark.unit
def test_build_command_initial_track_state():
    """Test muted/stopped tracks start silenced and black."""
    constraints = CaptureConstraints(width=320, height=320)

    command = build_ffmpeg_command(
        constraints, "out.webm", audio_enabled=False, video_enabled=False,
    )

    assert command[command.index("-af") + 1] == "volume@mic=volume=0"
    assert "eq@camera=brightness=-1" in command[command.index("-vf") + 1]


@pytest.mark.unit
def test_build_command_without_audio():
    """Test audio input and codec are omitted when audio is off."""
    constraints = CaptureConstraints(width=320, height=180, audio=False)

    command = build_ffmpeg_command(constraints, "out.webm")

    assert "-af" not in command
    assert "pulse" not in command


# =============================================================================
# ENUMERATION TESTS
# =============================================================================


@pytest.mark.unit
def test_enumerate_devices_uses_tools(backend, monkeypatch):
    """Test cameras and microphones come from v4l2-ctl and pactl."""
    outputs = {"v4l2-ctl": V4L2_OUTPUT, "pactl": PACTL_OUTPUT}
    monkeypatch.setattr(backend, "_run_tool", lambda command: outputs[command[0]])

    devices = backend.enumerate_devices()

    assert [d.kind for d in devices].count(DeviceKind.VIDEO_INPUT) == 2
    assert [d.kind for d in devices].count(DeviceKind.AUDIO_INPUT) == 1


@pytest.mark.unit
def test_enumerate_devices_without_tools(backend, monkeypatch):
    """Test missing tools raise EnumerationError so the fallback runs."""
    monkeypatch.setattr(backend, "_run_tool", lambda command: None)

    with pytest.raises(EnumerationError):
        backend.enumerate_devices()


@pytest.mark.unit
def test_fallback_enumeration_globs_video_nodes(backend, monkeypatch):
    """Test the fallback lists /dev/video* plus the default source."""
    monkeypatch.setattr(
        ffmpeg_backend.glob, "glob", lambda pattern: ["/dev/video1", "/dev/video0"],
    )

    devices = backend.probe_devices()

    assert [d.id for d in devices] == ["/dev/video0", "/dev/video1", "default"]
    assert devices[-1].kind == DeviceKind.AUDIO_INPUT


# =============================================================================
# DEVICE CHECK / CONTROL TESTS
# =============================================================================


@pytest.mark.unit
def test_check_missing_device(backend, tmp_path):
    """Test a missing node is reported as NotFoundError."""
    assert backend.check_device(str(tmp_path / "video99")) == "NotFoundError"
    assert backend.check_device(None) == "NotFoundError"


@pytest.mark.unit
def test_controls_need_stream(backend):
    """Test live controls fail without an acquired stream."""
    with pytest.raises(CaptureError):
        backend.set_track_enabled(TrackKind.AUDIO, False)
    with pytest.raises(InputSwitchError):
        backend.set_audio_input("default")


@pytest.fixture
def queued_requests(backend, monkeypatch):
    """Stream requests that stay pending until the test runs their workers"""
    queued = []
    monkeypatch.setattr(backend, "_acquire_worker", queued.append)
    monkeypatch.setattr(backend, "check_device", lambda path: None)
    return queued


def run_acquire_worker(backend, constraints):
    FFmpegCaptureBackend._acquire_worker(backend, constraints)


@pytest.mark.unit
def test_late_acquire_keeps_newest_stream(backend, event_bus, queued_requests):
    """Test an older request finishing last does not replace the live stream."""
    ready = []
    event_bus.subscribe("device_ready", lambda stream: ready.append(stream))
    old = CaptureConstraints(width=320, height=180, video_device_id="/dev/video0")
    new = CaptureConstraints(width=320, height=320, video_device_id="/dev/video0")

    backend.acquire_stream(old)
    backend.acquire_stream(new)
    run_acquire_worker(backend, new)
    run_acquire_worker(backend, old)

    assert [s.constraints.request_id for s in ready] == [new.request_id, old.request_id]
    backend.set_track_enabled(TrackKind.AUDIO, False)
    assert ready[0].is_track_enabled(TrackKind.AUDIO) is False
    assert ready[1].is_track_enabled(TrackKind.AUDIO) is True


@pytest.mark.unit
def test_acquire_error_names_request(backend, event_bus, queued_requests, monkeypatch):
    """Test device_error carries the request it answers."""
    errors = []
    event_bus.subscribe("device_error", lambda **data: errors.append(data))
    monkeypatch.setattr(backend, "check_device", lambda path: "NotReadableError")
    constraints = CaptureConstraints(width=320, height=180, video_device_id="/dev/video0")

    backend.acquire_stream(constraints)
    run_acquire_worker(backend, constraints)

    assert errors == [{"error_name": "NotReadableError", "request_id": constraints.request_id}]


@pytest.mark.unit
def test_stop_without_recording_is_noop(backend, event_bus):
    """Test stop_record outside a recording publishes nothing."""
    received = []
    event_bus.subscribe("finish_record", lambda **data: received.append(data))

    backend.stop_record()

    assert received == []
    assert backend.is_recording() is False


@pytest.mark.requires_ffmpeg
@pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="FFmpeg not installed")
def test_is_available_with_ffmpeg(backend):
    """Test availability reflects installed FFmpeg and cameras."""
    assert isinstance(backend.is_available(), bool)
