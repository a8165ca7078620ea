"""
Mock Capture Backend Implementation

Simulated capture backend for testing without cameras, microphones or FFmpeg.
Mimics the event sequence a real backend produces.

This is a "Fake" (test double) - it has working logic but no real hardware.
Events are published synchronously on the caller's thread unless
auto_ready is disabled, in which case the test decides when the device
becomes ready.
"""

import logging
import time
from typing import Callable, List, Optional

from core.event_bus import EventBus
from recording.constants import BackendEvent, DeviceKind, TrackKind
from recording.interfaces.capture_backend_interface import (
    CaptureBackend,
    CaptureError,
    EnumerationError,
    InputSwitchError,
)
from recording.models.artifact import RecordingArtifact
from recording.models.capture import CaptureConstraints, CaptureStream
from recording.models.device import Device

# Minimal EBML header so the payload looks like a WebM file
FAKE_WEBM_HEADER = b"\x1a\x45\xdf\xa3\x9f\x42\x86\x81\x01webm"


def default_mock_devices() -> List[Device]:
    return [
        Device("mock-video-0", DeviceKind.VIDEO_INPUT, "Mock Camera"),
        Device("mock-audio-0", DeviceKind.AUDIO_INPUT, "Mock Microphone"),
    ]


class MockCaptureBackend(CaptureBackend):
    """
    Mock capture backend for testing.

    Usage:
        bus = EventBus()
        backend = MockCaptureBackend(bus)
        backend.acquire_stream(constraints)   # publishes device_ready
        backend.start_record(stream)          # publishes start_record
        backend.stop_record()                 # publishes finish_record
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        devices: Optional[List[Device]] = None,
        auto_ready: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize mock backend.

        Args:
            event_bus: Bus to publish lifecycle events on
            devices: Devices returned by enumeration (default: one camera,
                one microphone)
            auto_ready: If True, acquire_stream publishes device_ready
                immediately. If False, call emit_device_ready() later.
            clock: Time source for artifact durations
        """
        super().__init__(event_bus)
        self.logger = logging.getLogger(__name__)
        self.auto_ready = auto_ready
        self._clock = clock

        self._devices: List[Device] = (
            list(devices) if devices is not None else default_mock_devices()
        )
        self._probe_devices: Optional[List[Device]] = None

        # Live state
        self._stream: Optional[CaptureStream] = None
        # Unanswered acquire_stream() requests, oldest first
        self._pending_requests: List[CaptureConstraints] = []
        self._latest_request_id: Optional[str] = None
        self._is_recording = False
        self._record_start: Optional[float] = None
        self.video_input_id: Optional[str] = None
        self.audio_input_id: Optional[str] = None

        # Call tracking for assertions
        self.enumerate_calls = 0
        self.probe_calls = 0
        self.release_calls = 0
        self.input_switch_calls = 0
        self.artifacts_produced = 0

        # Configuration for test scenarios
        self._device_error_name: Optional[str] = None
        self._fail_enumeration = False
        self._fail_probe = False
        self._fail_input_switch = False
        self._fail_start = False

        self.logger.info(f"Mock Capture Backend initialized ({len(self._devices)} devices)")

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    def enumerate_devices(self) -> List[Device]:
        self.enumerate_calls += 1
        if self._fail_enumeration:
            self.logger.warning("[MOCK] Simulated enumeration failure")
            raise EnumerationError("Simulated enumeration failure")
        return list(self._devices)

    def probe_devices(self) -> List[Device]:
        self.probe_calls += 1
        if self._fail_probe:
            self.logger.warning("[MOCK] Simulated probe failure")
            raise EnumerationError("Simulated probe failure")
        if self._probe_devices is not None:
            return list(self._probe_devices)
        return list(self._devices)

    # =========================================================================
    # STREAM LIFECYCLE
    # =========================================================================

    def acquire_stream(self, constraints: CaptureConstraints) -> None:
        self._pending_requests.append(constraints)
        self._latest_request_id = constraints.request_id

        if self._device_error_name:
            self.emit_device_error(self._device_error_name, constraints.request_id)
            return

        if self.auto_ready:
            self.emit_device_ready(constraints.request_id)

    @property
    def pending_request_count(self) -> int:
        return len(self._pending_requests)

    def _take_request(self, request_id: Optional[str]) -> CaptureConstraints:
        if not self._pending_requests:
            raise CaptureError("No pending stream request")
        if request_id is None:
            return self._pending_requests.pop(0)
        for index, constraints in enumerate(self._pending_requests):
            if constraints.request_id == request_id:
                return self._pending_requests.pop(index)
        raise CaptureError(f"No pending stream request {request_id}")

    def emit_device_ready(self, request_id: Optional[str] = None) -> CaptureStream:
        """
        Complete a pending acquire_stream() request.

        Args:
            request_id: Request to answer (None = the oldest one)

        Returns:
            The stream handed to subscribers
        """
        constraints = self._take_request(request_id)
        stream = CaptureStream(constraints=constraints)

        # Only the newest request becomes the live stream
        if constraints.request_id == self._latest_request_id:
            self._stream = stream
            self.video_input_id = constraints.video_device_id
            self.audio_input_id = constraints.audio_device_id

        self.logger.info(f"[MOCK] Stream ready: {stream.id} ({constraints.resolution})")
        self.event_bus.publish(BackendEvent.DEVICE_READY, stream=stream)
        return stream

    def emit_device_error(self, error_name: str, request_id: Optional[str] = None) -> None:
        """Fail a pending acquire_stream() request (None = the oldest one)"""
        constraints = self._take_request(request_id)
        self.logger.warning(f"[MOCK] Simulated device error: {error_name}")
        self.event_bus.publish(
            BackendEvent.DEVICE_ERROR,
            error_name=error_name,
            request_id=constraints.request_id,
        )

    def release_stream(self, stream: CaptureStream) -> None:
        self.release_calls += 1
        stream.active = False
        for kind in stream.tracks_enabled:
            stream.tracks_enabled[kind] = False
        if self._stream is stream:
            self._stream = None
        self.logger.debug(f"[MOCK] Stream released: {stream.id}")

    # =========================================================================
    # RECORDING
    # =========================================================================

    def start_record(self, stream: CaptureStream) -> None:
        if self._fail_start:
            self.logger.error("[MOCK] Simulated start failure")
            raise CaptureError("Simulated recorder failure")

        if self._is_recording:
            raise CaptureError("Already recording")

        if not stream.active:
            raise CaptureError(f"Stream {stream.id} is not active")

        self._is_recording = True
        self._record_start = self._clock()
        self.logger.info("[MOCK] Recording started")
        self.event_bus.publish(BackendEvent.START_RECORD)

    def stop_record(self) -> None:
        if not self._is_recording:
            self.logger.warning("[MOCK] Not recording")
            return

        duration = self.get_record_duration()
        self._is_recording = False
        self._record_start = None

        artifact = RecordingArtifact(
            data=FAKE_WEBM_HEADER + b"\x00" * 1024,
            mime_type="video/webm",
            duration_sec=duration,
        )
        self.artifacts_produced += 1

        self.logger.info(f"[MOCK] Recording finished ({duration:.1f}s)")
        self.event_bus.publish(BackendEvent.FINISH_RECORD, artifact=artifact)

    def cancel_record(self) -> None:
        if self._is_recording:
            self.logger.info("[MOCK] Recording cancelled")
        self._is_recording = False
        self._record_start = None

    def is_recording(self) -> bool:
        return self._is_recording

    def get_record_duration(self) -> float:
        if not self._is_recording or self._record_start is None:
            return 0.0
        return max(0.0, self._clock() - self._record_start)

    # =========================================================================
    # LIVE CONTROLS
    # =========================================================================

    def set_video_input(self, device_id: str) -> None:
        self.input_switch_calls += 1
        if self._fail_input_switch:
            raise InputSwitchError(f"Simulated video input switch failure: {device_id}")
        self.video_input_id = device_id
        self.logger.info(f"[MOCK] Video input: {device_id}")

    def set_audio_input(self, device_id: str) -> None:
        self.input_switch_calls += 1
        if self._fail_input_switch:
            raise InputSwitchError(f"Simulated audio input switch failure: {device_id}")
        self.audio_input_id = device_id
        self.logger.info(f"[MOCK] Audio input: {device_id}")

    def set_track_enabled(self, kind: TrackKind, enabled: bool) -> None:
        if self._stream is None:
            raise CaptureError("No live stream")
        self._stream.tracks_enabled[kind] = enabled
        self.logger.debug(f"[MOCK] {kind.value} track enabled={enabled}")

    def get_stream(self) -> Optional[CaptureStream]:
        return self._stream

    def is_available(self) -> bool:
        """Mock backend is always available"""
        return True

    def cleanup(self) -> None:
        self.logger.debug("[MOCK] Cleanup")
        self.cancel_record()
        self._pending_requests.clear()
        if self._stream is not None:
            self.release_stream(self._stream)

    # =========================================================================
    # TESTING HELPER METHODS (not part of CaptureBackend)
    # =========================================================================
    # These methods are ONLY for testing - configure mock behavior

    def set_devices(self, devices: List[Device]) -> None:
        """Replace the devices returned by enumeration"""
        self._devices = list(devices)

    def set_probe_devices(self, devices: Optional[List[Device]]) -> None:
        """Devices the fallback probe returns (None = same as enumeration)"""
        self._probe_devices = list(devices) if devices is not None else None

    def simulate_device_error(self, error_name: str = "NotAllowedError") -> None:
        """
        Configure mock to fail the next acquire_stream() call.

        Example:
            mock.simulate_device_error("NotFoundError")
        """
        self._device_error_name = error_name
        self.logger.debug(f"[MOCK] Configured device error: {error_name}")

    def simulate_enumeration_failure(self, fallback_fails: bool = False) -> None:
        """Make enumerate_devices() fail, optionally the probe too"""
        self._fail_enumeration = True
        self._fail_probe = fallback_fails

    def simulate_input_switch_failure(self) -> None:
        self._fail_input_switch = True

    def simulate_start_failure(self) -> None:
        self._fail_start = True

    def simulate_capture_error(self, message: str = "Simulated capture fault") -> None:
        """Abort recording and publish an error event, as a crashed recorder would"""
        self.logger.warning(f"[MOCK] Simulating capture fault: {message}")
        self._is_recording = False
        self._record_start = None
        self.event_bus.publish(BackendEvent.ERROR, message=message)

    def reset_test_config(self) -> None:
        """Reset test configuration to normal operation"""
        self._device_error_name = None
        self._fail_enumeration = False
        self._fail_probe = False
        self._fail_input_switch = False
        self._fail_start = False
        self.logger.debug("[MOCK] Test configuration reset")
