"""
Recording Test Configuration and Fixtures

Shared fixtures for recording module tests.

Sessions run with synchronous enumeration and a fake clock so that
tests never depend on wall-clock time.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from core.event_bus import EventBus
from recording.constants import DeviceKind, SessionState
from recording.controllers.device_registry import DeviceRegistry
from recording.controllers.recording_session import RecordingSession
from recording.implementations.mock_backend import MockCaptureBackend
from recording.models.device import Device


@pytest.fixture
def sleep_calls():
    """List that records the delays passed to the registry's sleep"""
    return []


# =============================================================================
# BACKEND FIXTURES
# =============================================================================


@pytest.fixture
def event_bus():
    bus = EventBus()
    yield bus
    bus.clear()


@pytest.fixture
def two_cameras():
    """Two cameras and two microphones"""
    return [
        Device("cam-front", DeviceKind.VIDEO_INPUT, "Front Camera"),
        Device("cam-usb", DeviceKind.VIDEO_INPUT, "USB Camera"),
        Device("mic-builtin", DeviceKind.AUDIO_INPUT, "Built-in Microphone"),
        Device("mic-headset", DeviceKind.AUDIO_INPUT, "Headset"),
    ]


@pytest.fixture
def mock_backend(event_bus, fake_clock, two_cameras):
    """
    Provide MockCaptureBackend publishing on event_bus.

    Usage:
        def test_backend(mock_backend):
            mock_backend.simulate_device_error("NotFoundError")
    """
    backend = MockCaptureBackend(event_bus, devices=two_cameras, clock=fake_clock)
    yield backend
    backend.cleanup()


@pytest.fixture
def registry(mock_backend, sleep_calls):
    """DeviceRegistry whose retry delay is recorded instead of slept"""
    return DeviceRegistry(mock_backend, retry_delay=1.0, sleep=sleep_calls.append)


# =============================================================================
# RECORDING SESSION FIXTURES
# =============================================================================


@pytest.fixture
def session(mock_backend, registry, fake_clock):
    """
    Provide an IDLE RecordingSession on the mock backend.

    Usage:
        def test_session(session):
            session.initialize()
            assert session.state == SessionState.READY
    """
    recording_session = RecordingSession(
        mock_backend,
        registry=registry,
        max_length=120,
        enumerate_in_background=False,
        check_interval=60,
        clock=fake_clock,
    )
    yield recording_session
    recording_session.cleanup()


@pytest.fixture
def ready_session(session):
    """Session that already has a live stream (READY)"""
    session.initialize()
    assert session.state == SessionState.READY
    return session


@pytest.fixture
def recording_session(ready_session):
    """Session that is RECORDING"""
    ready_session.start_recording()
    assert ready_session.state == SessionState.RECORDING
    return ready_session


# =============================================================================
# TEMPORARY DIRECTORY FIXTURES
# =============================================================================


@pytest.fixture
def temp_export_dir():
    """
    Provide temporary directory for exports.

    Directory is automatically cleaned up after test.
    """
    temp_dir = Path(tempfile.mkdtemp())

    yield temp_dir

    if temp_dir.exists():
        shutil.rmtree(temp_dir)
