"""
Recording Session

Owns the capture lifecycle: device permission, live stream, recording,
artifact hand-off. All state changes go through dispatch(), backed by a
transition table, so illegal transitions raise instead of being tolerated.

Backend lifecycle events arrive on the EventBus (possibly from backend
threads) and are routed into dispatch(). A re-entrant lock serializes
them with caller commands and the elapsed-time monitor.

State Flow:
    IDLE -> AWAITING_DEVICE -> READY -> RECORDING -> FINISHED
                   |                        |
                   +--> ERROR(kind) <-------+
    FINISHED / ERROR --reset--> IDLE
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from config.settings import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_MIRRORED,
    MAX_RECORDING_LENGTH,
    MIRROR_CAPTURE,
    MONITOR_CHECK_INTERVAL,
)
from core.state_machine import InvalidStateError, StateMachine
from recording.constants import (
    ENUMERATION_FAILED_MESSAGE,
    ERROR_MESSAGES,
    LIVE_STATES,
    SESSION_TRANSITIONS,
    AspectRatio,
    BackendEvent,
    DeviceKind,
    ErrorKind,
    SessionEvent,
    SessionState,
    TrackKind,
    format_duration,
    get_capture_dimensions,
    parse_aspect_ratio,
)
from recording.controllers.device_registry import DeviceRegistry
from recording.interfaces.capture_backend_interface import (
    CaptureBackend,
    CaptureError,
    DeviceError,
    EnumerationError,
    InputSwitchError,
    classify_device_error,
)
from recording.models.artifact import RecordingArtifact
from recording.models.capture import CaptureConstraints, CaptureStream, TrackToggles
from recording.models.device import Device


class RecordingSession:
    """
    Manages one capture session.

    Features:
    - Explicit state machine with a single dispatch entry point
    - Device selection through DeviceRegistry
    - Mute / camera-stop / mirror toggles
    - Auto-stop at the maximum recording length (120s default)
    - Exactly one artifact per recording
    - Stale backend results after teardown are ignored

    Usage:
        session = RecordingSession(backend)
        session.on_complete = lambda artifact: print(artifact)

        session.initialize()       # -> AWAITING_DEVICE, then READY
        session.start_recording()  # -> RECORDING
        session.stop_recording()   # -> FINISHED
    """

    def __init__(
        self,
        backend: CaptureBackend,
        registry: Optional[DeviceRegistry] = None,
        aspect_ratio=DEFAULT_ASPECT_RATIO,
        max_length: float = MAX_RECORDING_LENGTH,
        mirrored: bool = DEFAULT_MIRRORED,
        mirror_capture: bool = MIRROR_CAPTURE,
        enumerate_in_background: bool = True,
        check_interval: float = MONITOR_CHECK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize recording session.

        Args:
            backend: Capture backend (publishes lifecycle events)
            registry: Device registry, or None to create one for backend
            aspect_ratio: "16:9", "1:1", "9:16" or AspectRatio
            max_length: Recording auto-stops after this many seconds
            mirrored: Initial preview mirroring
            mirror_capture: Bake the horizontal flip into captured pixels
            enumerate_in_background: Run device enumeration on a worker
                thread after device_ready
            check_interval: Monitor thread poll interval (seconds)
            clock: Monotonic time source

        Raises:
            ValueError: If aspect_ratio or max_length is invalid
        """
        if max_length <= 0:
            raise ValueError(f"max_length must be positive: {max_length}")

        self.logger = logging.getLogger(__name__)
        self.backend = backend
        self.event_bus = backend.event_bus
        self.registry = registry or DeviceRegistry(backend)

        # Configuration
        self.aspect_ratio: AspectRatio = parse_aspect_ratio(aspect_ratio)
        self.max_length = max_length
        self.mirror_capture = mirror_capture
        self.enumerate_in_background = enumerate_in_background
        self.check_interval = check_interval
        self._clock = clock

        # State machine
        self._machine = StateMachine(
            initial=SessionState.IDLE,
            transitions=SESSION_TRANSITIONS,
            name="Recording session",
        )
        self._machine.on_state_change = self._trigger_state_change_callback
        self._lock = threading.RLock()

        # Bumped on every teardown; async work started under an older
        # generation must not touch the session
        self._generation = 0

        # request_id of the acquire_stream() call this attempt is waiting on
        self._pending_request_id: Optional[str] = None

        # Owned resources
        self._stream: Optional[CaptureStream] = None
        self.artifact: Optional[RecordingArtifact] = None
        self.toggles = TrackToggles(mirrored=mirrored)

        # Error details (set while in ERROR)
        self.error_kind: Optional[ErrorKind] = None
        self.error_message: Optional[str] = None
        self.error_detail: Optional[str] = None

        # Recording timing
        self._record_start: Optional[float] = None
        self._stop_requested = False
        self._auto_stopped = False

        # Worker threads
        self._monitor_thread: Optional[threading.Thread] = None
        self._monitor_stop_event = threading.Event()
        self._enumeration_thread: Optional[threading.Thread] = None

        # Callbacks for events
        self.on_state_change: Optional[Callable[[SessionState, SessionState], None]] = None
        self.on_start: Optional[Callable[[], None]] = None
        self.on_complete: Optional[Callable[[RecordingArtifact], None]] = None
        self.on_error: Optional[Callable[[ErrorKind, str], None]] = None
        self.on_devices_changed: Optional[Callable[[List[Device], List[Device]], None]] = None
        self.on_notice: Optional[Callable[[str], None]] = None

        # Single dispatch table: event -> handler
        self._handlers: Dict[SessionEvent, Callable[..., Any]] = {
            SessionEvent.INITIALIZE: self._on_initialize,
            SessionEvent.DEVICE_READY: self._on_device_ready,
            SessionEvent.DEVICE_ERROR: self._on_device_error,
            SessionEvent.START_RECORDING: self._on_start_recording,
            SessionEvent.FINISH_RECORD: self._on_finish_record,
            SessionEvent.CAPTURE_ERROR: self._on_capture_error,
            SessionEvent.RESET: self._on_reset,
        }

        self._subscribe()

        self.logger.info(
            f"Recording Session initialized "
            f"(aspect: {self.aspect_ratio.value}, "
            f"max length: {format_duration(max_length)})",
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._machine.current_state

    @property
    def stream(self) -> Optional[CaptureStream]:
        return self._stream

    def dispatch(self, event: SessionEvent, **payload: Any) -> SessionState:
        """
        Single entry point for every state change.

        Args:
            event: Session event
            **payload: Event data (stream, error_name, artifact, message)

        Returns:
            State after the event

        Raises:
            InvalidStateError: If the event is not allowed in the
                current state. Nothing is changed in that case.
        """
        with self._lock:
            if not self._machine.can_dispatch(event):
                raise InvalidStateError(
                    f"Cannot {event.value} in state {self.state.value}",
                    state=self.state,
                    event=event,
                )
            self._handlers[event](**payload)
            return self.state

    def _transition(self, event: SessionEvent, reason: str = "") -> None:
        self._machine.dispatch(event, reason)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def initialize(self) -> SessionState:
        """
        Request camera + microphone access.

        Returns:
            State after the request (READY if the backend answered
            synchronously, AWAITING_DEVICE otherwise, ERROR on failure)

        Raises:
            InvalidStateError: If not IDLE
        """
        return self.dispatch(SessionEvent.INITIALIZE)

    def start_recording(self) -> bool:
        """
        Start recording from the live stream.

        Returns:
            True if recording started, False if the backend failed
            (session is then in ERROR)

        Raises:
            InvalidStateError: If not READY
        """
        with self._lock:
            self.dispatch(SessionEvent.START_RECORDING)

            try:
                self.backend.start_record(self._stream)
            except CaptureError as e:
                self.logger.error(f"Failed to start recording: {e}")
                if self.state == SessionState.RECORDING:
                    self.dispatch(SessionEvent.CAPTURE_ERROR, message=str(e))
                return False

            return True

    def stop_recording(self) -> bool:
        """
        Ask the backend to finish the recording.

        The FINISHED transition happens when the backend publishes
        finish_record with the artifact.

        Returns:
            True if the stop was requested, False if one is already pending

        Raises:
            InvalidStateError: If not RECORDING
        """
        with self._lock:
            if self.state != SessionState.RECORDING:
                raise InvalidStateError(
                    f"Cannot stop recording in state {self.state.value}",
                    state=self.state,
                )

            if self._stop_requested:
                self.logger.debug("Stop already requested")
                return False

            self.logger.info(
                f"Stopping recording after {format_duration(self.get_elapsed_time())}",
            )
            self._stop_requested = True
            self._monitor_stop_event.set()

            try:
                self.backend.stop_record()
            except CaptureError as e:
                self.logger.error(f"Error stopping recording: {e}")
                if self.state == SessionState.RECORDING:
                    self.dispatch(SessionEvent.CAPTURE_ERROR, message=str(e))

            return True

    def reset(self) -> SessionState:
        """
        Tear down and return to IDLE.

        Releases all tracks, aborts a running recording without an
        artifact and invalidates pending enumeration results.
        """
        with self._lock:
            if self.state == SessionState.IDLE:
                return self.state
            return self.dispatch(SessionEvent.RESET)

    def refresh_devices(self):
        """
        Re-enumerate devices now (manual refresh).

        Returns:
            (video_inputs, audio_inputs)

        Raises:
            EnumerationError: If enumeration and the fallback both fail
        """
        generation = self._generation
        result = self.registry.refresh(is_current=lambda: self._generation == generation)
        if result is not None:
            self._trigger_devices_changed_callback(*result)
        return result

    # =========================================================================
    # LIVE CONTROLS
    # =========================================================================

    def set_video_input(self, device_id: str) -> Device:
        """
        Switch camera.

        Raises:
            InvalidStateError: If not READY/RECORDING
            DeviceNotFoundError: If device_id is unknown (backend untouched)
            InputSwitchError: If the backend fails (selection restored)
        """
        return self._switch_input(
            DeviceKind.VIDEO_INPUT, device_id, self.backend.set_video_input,
        )

    def set_audio_input(self, device_id: str) -> Device:
        """Switch microphone. Same contract as set_video_input()."""
        return self._switch_input(
            DeviceKind.AUDIO_INPUT, device_id, self.backend.set_audio_input,
        )

    def _switch_input(
        self,
        kind: DeviceKind,
        device_id: str,
        switch: Callable[[str], None],
    ) -> Device:
        with self._lock:
            self._require_live(f"change {kind.value}")

            previous = self.registry.get_selected(kind)
            device = self.registry.select(kind, device_id)

            try:
                switch(device_id)
            except InputSwitchError:
                self.registry.restore_selection(kind, previous)
                raise
            except CaptureError as e:
                self.registry.restore_selection(kind, previous)
                raise InputSwitchError(str(e)) from e

            self.logger.info(f"Changed {kind.value} to device: {device_id}")
            return device

    def toggle_mirror(self) -> bool:
        """
        Flip preview mirroring.

        Only the preview changes; captured pixels are flipped only when
        the session was created with mirror_capture=True.

        Returns:
            New mirrored value
        """
        with self._lock:
            self._require_live("toggle mirror")
            self.toggles.mirrored = not self.toggles.mirrored
            self.logger.info(f"Mirror mode {'on' if self.toggles.mirrored else 'off'}")
            return self.toggles.mirrored

    def toggle_microphone(self) -> bool:
        """
        Mute/unmute the audio tracks in place.

        Returns:
            New microphone_muted value
        """
        with self._lock:
            self._require_live("toggle microphone")
            muted = not self.toggles.microphone_muted
            self.backend.set_track_enabled(TrackKind.AUDIO, not muted)
            self.toggles.microphone_muted = muted
            self.logger.info("Microphone muted" if muted else "Microphone unmuted")
            return muted

    def toggle_camera(self) -> bool:
        """
        Stop/start the video tracks in place.

        Returns:
            New camera_stopped value
        """
        with self._lock:
            self._require_live("toggle camera")
            stopped = not self.toggles.camera_stopped
            self.backend.set_track_enabled(TrackKind.VIDEO, not stopped)
            self.toggles.camera_stopped = stopped
            self.logger.info("Camera disabled" if stopped else "Camera enabled")
            return stopped

    def set_aspect_ratio(self, ratio) -> AspectRatio:
        """
        Change the capture surface preset.

        A live surface is torn down and re-acquired with the new
        dimensions. In IDLE/FINISHED/ERROR the value applies to the next
        initialize().

        Raises:
            InvalidStateError: While RECORDING
            ValueError: Unknown preset
        """
        new_ratio = parse_aspect_ratio(ratio)

        with self._lock:
            if self.state == SessionState.RECORDING:
                raise InvalidStateError(
                    "Cannot change aspect ratio while recording",
                    state=self.state,
                )

            if new_ratio == self.aspect_ratio:
                return self.aspect_ratio

            self.logger.info(
                f"Aspect ratio {self.aspect_ratio.value} -> {new_ratio.value}",
            )
            self.aspect_ratio = new_ratio

            if self.state in (SessionState.AWAITING_DEVICE, SessionState.READY):
                self.dispatch(SessionEvent.RESET)
                self.dispatch(SessionEvent.INITIALIZE)

            return self.aspect_ratio

    def _require_live(self, action: str) -> None:
        if self.state not in LIVE_STATES:
            raise InvalidStateError(
                f"Cannot {action} in state {self.state.value}",
                state=self.state,
            )

    # =========================================================================
    # EVENT HANDLERS (called through dispatch with the lock held)
    # =========================================================================

    def _on_initialize(self) -> None:
        self.error_kind = None
        self.error_message = None
        self.error_detail = None
        self.artifact = None

        self._transition(SessionEvent.INITIALIZE, "requesting camera and microphone")

        constraints = self.build_constraints()
        self._pending_request_id = constraints.request_id
        try:
            self.backend.acquire_stream(constraints)
        except DeviceError as e:
            if self.state == SessionState.AWAITING_DEVICE:
                self.dispatch(SessionEvent.DEVICE_ERROR, kind=e.kind, detail=str(e))
        except CaptureError as e:
            if self.state == SessionState.AWAITING_DEVICE:
                self.dispatch(SessionEvent.DEVICE_ERROR, kind=ErrorKind.UNKNOWN, detail=str(e))

    def _on_device_ready(self, stream: CaptureStream) -> None:
        self._pending_request_id = None
        self._stream = stream
        self._adopt_stream_devices(stream)
        self.toggles.reset_tracks()
        self._transition(SessionEvent.DEVICE_READY, f"stream {stream.id}")
        self._start_enumeration()

    def _on_device_error(
        self,
        error_name: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        detail: str = "",
    ) -> None:
        self._pending_request_id = None
        kind = kind or classify_device_error(error_name)
        self.error_kind = kind
        self.error_message = ERROR_MESSAGES[kind]
        self.error_detail = detail or error_name
        self.logger.error(f"Device error: {error_name or kind.value}")

        self._transition(SessionEvent.DEVICE_ERROR, kind.value)
        self._trigger_error_callback(kind, self.error_message)

    def _on_start_recording(self) -> None:
        # Mute/camera-stop reset; mirroring is kept
        if self.toggles.microphone_muted:
            self._restore_track(TrackKind.AUDIO)
        if self.toggles.camera_stopped:
            self._restore_track(TrackKind.VIDEO)
        self.toggles.reset_tracks()

        self.artifact = None
        self._stop_requested = False
        self._auto_stopped = False
        self._record_start = self._clock()

        self._transition(SessionEvent.START_RECORDING)
        self._start_monitoring()

    def _on_finish_record(self, artifact: RecordingArtifact) -> None:
        self.artifact = artifact
        self._monitor_stop_event.set()
        self._record_start = None
        self._stop_requested = False
        self.toggles.reset_tracks()
        self._release_stream()

        self._transition(
            SessionEvent.FINISH_RECORD,
            f"{artifact.duration_sec:.1f}s, {artifact.size_bytes} bytes",
        )
        self._trigger_complete_callback(artifact)

    def _on_capture_error(self, message: str = "") -> None:
        self._monitor_stop_event.set()
        try:
            self.backend.cancel_record()
        except CaptureError as e:
            self.logger.error(f"Error cancelling recording: {e}")

        self._record_start = None
        self._stop_requested = False
        self.toggles.reset_tracks()
        self._release_stream()

        self.error_kind = ErrorKind.UNKNOWN
        self.error_message = ERROR_MESSAGES[ErrorKind.UNKNOWN]
        self.error_detail = message

        self._transition(SessionEvent.CAPTURE_ERROR, message)
        self._trigger_error_callback(self.error_kind, message or self.error_message)

    def _on_reset(self) -> None:
        self._teardown()
        self.artifact = None
        self.error_kind = None
        self.error_message = None
        self.error_detail = None
        self._transition(SessionEvent.RESET)

    # =========================================================================
    # BACKEND EVENT SUBSCRIPTIONS
    # =========================================================================

    def _subscribe(self) -> None:
        self.event_bus.subscribe(BackendEvent.DEVICE_READY, self._handle_device_ready)
        self.event_bus.subscribe(BackendEvent.DEVICE_ERROR, self._handle_device_error)
        self.event_bus.subscribe(BackendEvent.START_RECORD, self._handle_start_record)
        self.event_bus.subscribe(BackendEvent.FINISH_RECORD, self._handle_finish_record)
        self.event_bus.subscribe(BackendEvent.ERROR, self._handle_backend_error)

    def _unsubscribe(self) -> None:
        self.event_bus.unsubscribe(BackendEvent.DEVICE_READY, self._handle_device_ready)
        self.event_bus.unsubscribe(BackendEvent.DEVICE_ERROR, self._handle_device_error)
        self.event_bus.unsubscribe(BackendEvent.START_RECORD, self._handle_start_record)
        self.event_bus.unsubscribe(BackendEvent.FINISH_RECORD, self._handle_finish_record)
        self.event_bus.unsubscribe(BackendEvent.ERROR, self._handle_backend_error)

    def _handle_device_ready(self, stream: CaptureStream) -> None:
        with self._lock:
            if stream.constraints.request_id != self._pending_request_id:
                # Answer to a request made before teardown
                self.logger.warning(
                    f"Ignoring device_ready for stale request "
                    f"{stream.constraints.request_id}, releasing stream {stream.id}",
                )
                self.backend.release_stream(stream)
                return

            try:
                self.dispatch(SessionEvent.DEVICE_READY, stream=stream)
            except InvalidStateError:
                # Not waiting for a device
                self.logger.warning(
                    f"Ignoring device_ready in state {self.state.value}, "
                    f"releasing stream {stream.id}",
                )
                self.backend.release_stream(stream)

    def _handle_device_error(
        self,
        error_name: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        with self._lock:
            if request_id != self._pending_request_id:
                self.logger.warning(
                    f"Ignoring device_error ({error_name}) for stale request {request_id}",
                )
                return

            try:
                self.dispatch(SessionEvent.DEVICE_ERROR, error_name=error_name)
            except InvalidStateError:
                self.logger.warning(
                    f"Ignoring device_error ({error_name}) in state {self.state.value}",
                )

    def _handle_start_record(self) -> None:
        with self._lock:
            if self.state == SessionState.READY:
                # Recording started on the backend side (e.g. its own
                # record control)
                self.dispatch(SessionEvent.START_RECORDING)
            elif self.state != SessionState.RECORDING:
                self.logger.warning(f"Ignoring start_record in state {self.state.value}")
                return

            self.logger.info("Recording started")
            self._trigger_start_callback()

    def _handle_finish_record(self, artifact: RecordingArtifact) -> None:
        with self._lock:
            try:
                self.dispatch(SessionEvent.FINISH_RECORD, artifact=artifact)
            except InvalidStateError:
                # At most one artifact per recording
                self.logger.warning(
                    f"Ignoring finish_record in state {self.state.value}",
                )

    def _handle_backend_error(self, message: str = "") -> None:
        with self._lock:
            if self.state == SessionState.RECORDING:
                self.logger.error(f"Capture fault during recording: {message}")
                self.dispatch(SessionEvent.CAPTURE_ERROR, message=message)
            else:
                self.logger.warning(f"Backend error in state {self.state.value}: {message}")
                self._trigger_notice_callback(message)

    # =========================================================================
    # RESOURCES
    # =========================================================================

    def build_constraints(self) -> CaptureConstraints:
        """Constraints for the current preset and device selection"""
        width, height = get_capture_dimensions(self.aspect_ratio)
        video = self.registry.get_selected(DeviceKind.VIDEO_INPUT)
        audio = self.registry.get_selected(DeviceKind.AUDIO_INPUT)
        return CaptureConstraints(
            width=width,
            height=height,
            video_device_id=video.id if video else None,
            audio_device_id=audio.id if audio else None,
            max_length=self.max_length,
            mirror_capture=self.mirror_capture,
        )

    def _adopt_stream_devices(self, stream: CaptureStream) -> None:
        """Point the registry selection at the devices the stream opened"""
        if stream.constraints.video_device_id:
            self.registry.prefer(DeviceKind.VIDEO_INPUT, stream.constraints.video_device_id)
        if stream.constraints.audio_device_id:
            self.registry.prefer(DeviceKind.AUDIO_INPUT, stream.constraints.audio_device_id)

    def _restore_track(self, kind: TrackKind) -> None:
        try:
            self.backend.set_track_enabled(kind, True)
        except CaptureError as e:
            self.logger.warning(f"Could not re-enable {kind.value} track: {e}")

    def _release_stream(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        try:
            self.backend.release_stream(stream)
        except CaptureError as e:
            self.logger.error(f"Error releasing stream {stream.id}: {e}")

    def _teardown(self) -> None:
        """Release everything the session holds. Lock must be held."""
        self._generation += 1
        self._pending_request_id = None
        self._monitor_stop_event.set()

        if self.state == SessionState.RECORDING:
            self.logger.info("Discarding recording in progress")
            try:
                self.backend.cancel_record()
            except CaptureError as e:
                self.logger.error(f"Error cancelling recording: {e}")

        self._release_stream()
        self.toggles.reset_tracks()
        self._record_start = None
        self._stop_requested = False

    # =========================================================================
    # DEVICE ENUMERATION
    # =========================================================================

    def _start_enumeration(self) -> None:
        generation = self._generation

        if not self.enumerate_in_background:
            self._enumerate_worker(generation)
            return

        self._enumeration_thread = threading.Thread(
            target=self._enumerate_worker,
            args=(generation,),
            daemon=True,
            name="DeviceEnumeration",
        )
        self._enumeration_thread.start()

    def _enumerate_worker(self, generation: int) -> None:
        """Enumerate after device_ready; failure never leaves READY"""
        try:
            result = self.registry.refresh(
                is_current=lambda: self._generation == generation,
            )
        except EnumerationError as e:
            self.logger.warning(f"Device enumeration failed: {e}")
            with self._lock:
                if self._generation == generation:
                    self._trigger_notice_callback(ENUMERATION_FAILED_MESSAGE)
            return
        except Exception as e:
            self.logger.error(f"Unexpected error enumerating devices: {e}", exc_info=True)
            return

        if result is None:
            return

        with self._lock:
            if self._generation != generation:
                self.logger.debug("Session torn down during enumeration")
                return
            self._trigger_devices_changed_callback(*result)

    def wait_for_enumeration(self, timeout: Optional[float] = None) -> bool:
        """
        Block until background enumeration is done.

        Returns:
            True if no enumeration is running anymore
        """
        thread = self._enumeration_thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # =========================================================================
    # TIMING / AUTO-STOP
    # =========================================================================

    def get_elapsed_time(self) -> float:
        """
        Get elapsed recording time in seconds.

        Returns:
            Seconds since recording started, or 0.0 if not recording
        """
        if self.state != SessionState.RECORDING or self._record_start is None:
            return 0.0
        return max(0.0, self._clock() - self._record_start)

    def get_remaining_time(self) -> float:
        """Seconds until the maximum length, or 0.0 if not recording"""
        if self.state != SessionState.RECORDING:
            return 0.0
        return max(0.0, self.max_length - self.get_elapsed_time())

    def check_time_limit(self) -> bool:
        """
        Auto-stop when the maximum length is reached.

        Called by the monitor thread; safe to call directly.

        Returns:
            True if monitoring can end (limit hit or no longer recording)
        """
        with self._lock:
            if self.state != SessionState.RECORDING:
                return True
            if self._stop_requested:
                return True
            if self.get_elapsed_time() < self.max_length:
                return False

            self.logger.info(
                f"Maximum recording length reached "
                f"({format_duration(self.max_length)}), auto-stopping",
            )
            self._auto_stopped = True
            self.stop_recording()
            return True

    @property
    def auto_stopped(self) -> bool:
        """True if the last recording was stopped by the length limit"""
        return self._auto_stopped

    def _start_monitoring(self) -> None:
        self._monitor_stop_event = threading.Event()
        self._monitor_thread = threading.Thread(
            target=self._monitor_worker,
            args=(self._monitor_stop_event,),
            daemon=True,
            name="RecordingMonitor",
        )
        self._monitor_thread.start()
        self.logger.debug("Monitoring thread started")

    def _monitor_worker(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.check_interval):
            try:
                if self.check_time_limit():
                    break
            except Exception as e:
                self.logger.error(f"Error in monitoring thread: {e}")

    def _join_workers(self, timeout: float = 2.0) -> None:
        """Wait for worker threads. Never call with the lock held."""
        current = threading.current_thread()
        for thread in (self._monitor_thread, self._enumeration_thread):
            if thread and thread.is_alive() and thread is not current:
                thread.join(timeout=timeout)

    # =========================================================================
    # CALLBACK TRIGGERS
    # =========================================================================

    def _trigger_state_change_callback(self, old_state, new_state) -> None:
        if self.on_state_change:
            try:
                self.on_state_change(old_state, new_state)
            except Exception as e:
                self.logger.error(f"Error in state change callback: {e}")

    def _trigger_start_callback(self) -> None:
        if self.on_start:
            try:
                self.on_start()
            except Exception as e:
                self.logger.error(f"Error in start callback: {e}")

    def _trigger_complete_callback(self, artifact: RecordingArtifact) -> None:
        if self.on_complete:
            try:
                self.on_complete(artifact)
            except Exception as e:
                self.logger.error(f"Error in complete callback: {e}")

    def _trigger_error_callback(self, kind: ErrorKind, message: str) -> None:
        if self.on_error:
            try:
                self.on_error(kind, message)
            except Exception as e:
                self.logger.error(f"Error in error callback: {e}")

    def _trigger_devices_changed_callback(self, video: List[Device], audio: List[Device]) -> None:
        if self.on_devices_changed:
            try:
                self.on_devices_changed(video, audio)
            except Exception as e:
                self.logger.error(f"Error in devices callback: {e}")

    def _trigger_notice_callback(self, message: str) -> None:
        if self.on_notice:
            try:
                self.on_notice(message)
            except Exception as e:
                self.logger.error(f"Error in notice callback: {e}")

    # =========================================================================
    # STATUS AND INFO
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """
        Get complete session status.

        Returns:
            Dictionary with status information
        """
        with self._lock:
            return {
                "state": self.state.value,
                "aspect_ratio": self.aspect_ratio.value,
                "elapsed_time": self.get_elapsed_time(),
                "remaining_time": self.get_remaining_time(),
                "max_length": self.max_length,
                "toggles": self.toggles.to_dict(),
                "stream_id": self._stream.id if self._stream else None,
                "has_artifact": self.artifact is not None,
                "error_kind": self.error_kind.value if self.error_kind else None,
                "error_message": self.error_message,
                "devices": self.registry.get_status(),
            }

    def get_session_info(self) -> str:
        """Human-readable session summary"""
        status = self.get_status()

        info = [
            f"State: {status['state']}",
            f"Aspect ratio: {status['aspect_ratio']}",
        ]
        if self.state == SessionState.RECORDING:
            info.append(f"Elapsed: {format_duration(status['elapsed_time'])}")
            info.append(f"Remaining: {format_duration(status['remaining_time'])}")
        if self.artifact is not None:
            info.append(f"Recorded: {format_duration(self.artifact.duration_sec)}")
        if self.error_message:
            info.append(f"Error: {self.error_message}")

        return "\n".join(info)

    def cleanup(self) -> None:
        """
        Tear down and stop listening to the backend.

        Always call this when done with the session!
        """
        self.logger.info("Cleaning up Recording Session")

        with self._lock:
            if self.state != SessionState.IDLE:
                self.dispatch(SessionEvent.RESET)
            else:
                self._generation += 1
            self._unsubscribe()

        self._join_workers()
        self.logger.info("Recording Session cleanup complete")
