"""
Session Service

Wires the capture and overlay components together and provides the
command-line entry point.

Architecture:
- EventBus carries backend lifecycle events to the RecordingSession
- RecordingSession owns the capture state machine
- On completion an OverlayScheduler is created for the artifact duration
- Local errors (bad device id, invalid overlay, command in the wrong
  state) become user notices; session-fatal errors arrive through
  RecordingSession.on_error

Flow:
    start() -> record() -> stop() -> open_editor() -> export()
                                          |
                                   record_again() -> READY
"""

import argparse
import logging
import logging.handlers
import sys
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from config.settings import (
    FFMPEG_STOP_TIMEOUT,
    LOG_BACKUP_COUNT,
    LOG_DIR,
    LOG_SERVICE_FILE,
    OVERLAY_EXPORT_SUFFIX,
)
from core.event_bus import EventBus
from core.state_machine import InvalidStateError
from overlay import (
    MockPlayback,
    Overlay,
    OverlayDraft,
    OverlayEditor,
    OverlayError,
    OverlayScheduler,
    PlaybackSurface,
    parse_anchor,
)
from recording import (
    CaptureBackend,
    CaptureError,
    DeviceKind,
    DeviceNotFoundError,
    DeviceRegistry,
    EnumerationError,
    ErrorKind,
    InputSwitchError,
    RecordingArtifact,
    RecordingFactory,
    RecordingSession,
    SessionConfig,
    SessionState,
    export_artifact,
)
from recording.constants import (
    DEVICE_UNAVAILABLE_MESSAGE,
    ENUMERATION_FAILED_MESSAGE,
    INPUT_SWITCH_FAILED_MESSAGE,
    format_duration,
    get_editor_dimensions,
)

DEVICE_KIND_NAMES = {
    DeviceKind.VIDEO_INPUT: "camera",
    DeviceKind.AUDIO_INPUT: "microphone",
}


class SessionOrchestrator:
    """
    One user's capture-and-annotate workflow.

    Usage:
        studio = SessionOrchestrator(mode="mock")
        studio.start()
        studio.record()
        studio.stop()
        studio.add_overlay("Hello", 0, 2, "bottom")
        studio.export(Path("./exports"))
        studio.shutdown()
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        config: Optional[SessionConfig] = None,
        backend: Optional[CaptureBackend] = None,
        enumerate_in_background: bool = True,
    ):
        """
        Initialize all components and wire callbacks.

        Args:
            mode: "auto", "real" or "mock" (None = config.capture_mode)
            config: Session settings (None = load the default YAML file)
            backend: Pre-built backend (tests); overrides mode
            enumerate_in_background: Passed to RecordingSession
        """
        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing Session Service...")

        self.config = config or SessionConfig()

        if backend is None:
            backend = RecordingFactory.create_backend(
                mode or self.config.capture_mode,
                event_bus=EventBus(),
            )
        self.backend = backend
        self.event_bus = backend.event_bus

        self.registry = DeviceRegistry(
            self.backend,
            retry_delay=self.config.enumeration_retry_delay,
        )
        self.session = RecordingSession(
            self.backend,
            registry=self.registry,
            aspect_ratio=self.config.aspect_ratio,
            max_length=self.config.max_recording_length,
            mirrored=self.config.mirrored,
            mirror_capture=self.config.mirror_capture,
            enumerate_in_background=enumerate_in_background,
        )

        # Editing state (exists once a recording finished)
        self.artifact: Optional[RecordingArtifact] = None
        self.recorded_aspect_ratio = None
        self.scheduler: Optional[OverlayScheduler] = None
        self.editor: Optional[OverlayEditor] = None
        self._completed = threading.Event()

        # Callbacks for the presentation layer
        self.on_notice: Optional[Callable[[str], None]] = None
        self.on_complete: Optional[Callable[[RecordingArtifact], None]] = None

        self._setup_callbacks()

        self.logger.info("Session Service initialized successfully")

    def _setup_callbacks(self) -> None:
        self.session.on_state_change = self._handle_state_change
        self.session.on_start = self._handle_recording_started
        self.session.on_complete = self._handle_recording_complete
        self.session.on_error = self._handle_session_error
        self.session.on_devices_changed = self._handle_devices_changed
        self.session.on_notice = self._notice

    @property
    def state(self) -> SessionState:
        return self.session.state

    # =========================================================================
    # CAPTURE COMMANDS
    # =========================================================================

    def start(self) -> SessionState:
        """Request devices. No-op unless IDLE."""
        if self.session.state != SessionState.IDLE:
            self.logger.debug(f"Already started ({self.session.state.value})")
            return self.session.state
        return self.session.initialize()

    def wait_until_ready(self, timeout: float = 10.0) -> bool:
        """
        Poll until the device request is answered.

        Returns:
            True if the session is READY
        """
        deadline = time.monotonic() + timeout
        while self.session.state == SessionState.AWAITING_DEVICE:
            if time.monotonic() >= deadline:
                self.logger.warning("Timed out waiting for devices")
                break
            time.sleep(0.05)
        return self.session.state == SessionState.READY

    def record(self) -> bool:
        try:
            return self.session.start_recording()
        except InvalidStateError as e:
            self._notice(f"Cannot start recording: {e}")
            return False

    def stop(self) -> bool:
        try:
            return self.session.stop_recording()
        except InvalidStateError as e:
            self._notice(f"Cannot stop recording: {e}")
            return False

    def wait_for_completion(self, timeout: Optional[float] = None) -> Optional[RecordingArtifact]:
        """
        Block until the recording produced its artifact.

        Returns:
            The artifact, or None on timeout
        """
        if self._completed.wait(timeout):
            return self.artifact
        return None

    def set_video_input(self, device_id: str) -> bool:
        return self._switch_input(DeviceKind.VIDEO_INPUT, device_id)

    def set_audio_input(self, device_id: str) -> bool:
        return self._switch_input(DeviceKind.AUDIO_INPUT, device_id)

    def _switch_input(self, kind: DeviceKind, device_id: str) -> bool:
        name = DEVICE_KIND_NAMES[kind]
        try:
            if kind == DeviceKind.VIDEO_INPUT:
                self.session.set_video_input(device_id)
            else:
                self.session.set_audio_input(device_id)
            return True
        except DeviceNotFoundError:
            self._notice(DEVICE_UNAVAILABLE_MESSAGE.format(kind=name))
        except InputSwitchError as e:
            self.logger.error(f"Input switch failed: {e}")
            self._notice(INPUT_SWITCH_FAILED_MESSAGE.format(kind=name))
        except InvalidStateError as e:
            self._notice(str(e))
        return False

    def toggle_microphone(self) -> Optional[bool]:
        return self._toggle(self.session.toggle_microphone)

    def toggle_camera(self) -> Optional[bool]:
        return self._toggle(self.session.toggle_camera)

    def toggle_mirror(self) -> Optional[bool]:
        return self._toggle(self.session.toggle_mirror)

    def _toggle(self, toggle: Callable[[], bool]) -> Optional[bool]:
        try:
            return toggle()
        except (InvalidStateError, CaptureError) as e:
            self._notice(str(e))
            return None

    def set_aspect_ratio(self, ratio) -> bool:
        try:
            self.session.set_aspect_ratio(ratio)
            return True
        except (InvalidStateError, ValueError) as e:
            self._notice(str(e))
            return False

    def refresh_devices(self) -> bool:
        try:
            self.session.refresh_devices()
            return True
        except EnumerationError as e:
            self.logger.error(f"Device refresh failed: {e}")
            self._notice(ENUMERATION_FAILED_MESSAGE)
            return False

    # =========================================================================
    # OVERLAY EDITING
    # =========================================================================

    def open_editor(self, playback: Optional[PlaybackSurface] = None) -> OverlayEditor:
        """
        Bind an editor to a playback surface for the finished recording.

        Args:
            playback: Player showing the artifact (None = MockPlayback)

        Raises:
            InvalidStateError: If there is no finished recording
        """
        if self.scheduler is None or self.artifact is None:
            raise InvalidStateError("No finished recording to edit", state=self.state)

        if self.editor is not None:
            self.editor.close()

        if playback is None:
            playback = MockPlayback(
                self.artifact.duration_sec,
                frame_size=get_editor_dimensions(self.recorded_aspect_ratio),
            )
        self.editor = OverlayEditor(
            self.scheduler,
            playback,
            draft_start_sec=self.config.overlay_default_start,
            draft_end_sec=self.config.overlay_default_end,
        )
        return self.editor

    def add_overlay(self, content: str, start_sec: float, end_sec: float, anchor="top-left") -> Optional[Overlay]:
        """
        Add an overlay directly (no editor needed).

        Returns:
            The overlay, or None if it was rejected (a notice is emitted)
        """
        if self.scheduler is None:
            self._notice("Record a video before adding overlays")
            return None

        try:
            draft = OverlayDraft(content, start_sec, end_sec, parse_anchor(anchor))
            return self.scheduler.add(draft)
        except (OverlayError, ValueError) as e:
            self._notice(f"Overlay rejected: {e}")
            return None

    def export(self, directory: Path, timestamp_ms: Optional[int] = None) -> Tuple[Path, Path]:
        """
        Write the recording and its overlays.

        Returns:
            (video_path, overlays_path)

        Raises:
            InvalidStateError: If there is no finished recording
            OSError: If the files cannot be written
        """
        if self.artifact is None or self.scheduler is None:
            raise InvalidStateError("No finished recording to export", state=self.state)

        video_path = export_artifact(self.artifact, Path(directory), timestamp_ms=timestamp_ms)
        overlays_path = video_path.with_name(video_path.stem + OVERLAY_EXPORT_SUFFIX)
        self.scheduler.export_json(overlays_path)

        self.logger.info(f"Export complete: {video_path.name}, {len(self.scheduler)} overlay(s)")
        return video_path, overlays_path

    def record_again(self) -> SessionState:
        """Drop the finished recording and its overlays, then request devices again"""
        if self.editor is not None:
            self.editor.close()
            self.editor = None

        self.scheduler = None
        self.artifact = None
        self.recorded_aspect_ratio = None
        self._completed.clear()

        self.session.reset()
        return self.session.initialize()

    # =========================================================================
    # CALLBACK HANDLERS
    # =========================================================================

    def _handle_state_change(self, old_state: SessionState, new_state: SessionState) -> None:
        self.logger.debug(f"Session {old_state.value} -> {new_state.value}")

    def _handle_recording_started(self) -> None:
        self.logger.info(
            f"Recording (auto-stop after {format_duration(self.session.max_length)})",
        )

    def _handle_recording_complete(self, artifact: RecordingArtifact) -> None:
        self.artifact = artifact
        self.recorded_aspect_ratio = self.session.aspect_ratio
        self.scheduler = OverlayScheduler(artifact.duration_sec)
        self._completed.set()

        self.logger.info(f"Recording complete: {artifact}")

        if self.on_complete:
            try:
                self.on_complete(artifact)
            except Exception as e:
                self.logger.error(f"Error in complete callback: {e}")

    def _handle_session_error(self, kind: ErrorKind, message: str) -> None:
        self.logger.error(f"Session error ({kind.value}): {message}")
        self._notice(message)

    def _handle_devices_changed(self, video: List, audio: List) -> None:
        self.logger.info(
            "Devices: "
            + ", ".join(d.display_label for d in video + audio),
        )

    def _notice(self, message: str) -> None:
        self.logger.warning(message)
        if self.on_notice:
            try:
                self.on_notice(message)
            except Exception as e:
                self.logger.error(f"Error in notice callback: {e}")

    # =========================================================================
    # SHUTDOWN HANDLING
    # =========================================================================

    def shutdown(self) -> None:
        """Close the editor, tear down the session and release the backend"""
        self.logger.info("Shutting down Session Service...")

        if self.editor is not None:
            self.editor.close()
            self.editor = None

        self.session.cleanup()
        self.backend.cleanup()

        self.logger.info("Session Service shutdown complete")


def parse_overlay_arg(value: str) -> OverlayDraft:
    """
    Parse a --overlay argument: "content|start|end|anchor".

    start, end and anchor are optional.

    Example:
        parse_overlay_arg("Hello|0|3|bottom")
    """
    parts = value.split("|")
    if len(parts) > 4 or not parts[0].strip():
        raise argparse.ArgumentTypeError(
            f"Expected 'content|start|end|anchor', got: {value!r}",
        )

    draft = OverlayDraft(content=parts[0])
    try:
        if len(parts) > 1 and parts[1]:
            draft.start_sec = float(parts[1])
        if len(parts) > 2 and parts[2]:
            draft.end_sec = float(parts[2])
        if len(parts) > 3 and parts[3]:
            draft.anchor = parse_anchor(parts[3])
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))

    return draft


def setup_logging(level: int = logging.INFO, log_dir: str = LOG_DIR) -> None:
    """
    Setup logging with rotation.

    Logs to both console and file:
    - Daily rotation
    - Keep 7 days of logs
    - Falls back to ./logs when log_dir is not writable
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    log_format = logging.Formatter("%(asctime)s %(levelname)s %(message)s | %(name)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(log_format)
    logger.addHandler(console_handler)

    log_file = Path(log_dir) / LOG_SERVICE_FILE
    try:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except (PermissionError, FileNotFoundError):
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        fallback_log = logs_dir / "capture-studio.log"
        logger.warning(f"Cannot write to {log_file}, using fallback: {fallback_log}")
        logger.info(
            f"To fix: sudo mkdir -p {log_dir} && sudo chown $(whoami) {log_dir}",
        )

        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(fallback_log),
            when="midnight",
            interval=1,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )

    file_handler.setLevel(level)
    file_handler.setFormatter(log_format)
    logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Record a short clip and annotate it with timed overlays",
    )
    parser.add_argument(
        "--mode",
        choices=["auto", "real", "mock"],
        default=None,
        help="Capture backend (default: from config, normally auto)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=5.0,
        help="Seconds to record (capped by the maximum recording length)",
    )
    parser.add_argument(
        "--aspect-ratio",
        choices=["16:9", "1:1", "9:16"],
        default=None,
        help="Capture preset (default: from config)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Export directory (default: from config)",
    )
    parser.add_argument(
        "--overlay",
        type=parse_overlay_arg,
        action="append",
        default=[],
        metavar="CONTENT|START|END|ANCHOR",
        help="Overlay to add after recording (repeatable)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML session config file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Records one clip, applies the --overlay arguments and exports the
    video with its overlay JSON.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("Capture Studio Starting")
    logger.info("=" * 60)

    try:
        config = SessionConfig(args.config)
        if args.aspect_ratio:
            config.set("aspect_ratio", args.aspect_ratio)
        studio = SessionOrchestrator(mode=args.mode, config=config)
    except (ValueError, RuntimeError) as e:
        logger.critical(f"Cannot start: {e}")
        return 1

    try:
        studio.start()
        if not studio.wait_until_ready():
            logger.error(f"Devices not available: {studio.session.error_message}")
            return 1

        if not studio.record():
            return 1

        artifact = studio.wait_for_completion(timeout=args.duration)
        if artifact is None:
            studio.stop()
            artifact = studio.wait_for_completion(timeout=FFMPEG_STOP_TIMEOUT + 1.0)
        if artifact is None:
            logger.error("Recording did not finish")
            return 1

        for draft in args.overlay:
            studio.add_overlay(draft.content, draft.start_sec, draft.end_sec, draft.anchor)

        video_path, overlays_path = studio.export(args.output_dir or config.export_dir)
        print(f"Video: {video_path}")
        print(f"Overlays: {overlays_path}")
        return 0

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 130
    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        return 1
    finally:
        studio.shutdown()


if __name__ == "__main__":
    sys.exit(main())
