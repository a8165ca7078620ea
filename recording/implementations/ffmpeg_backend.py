"""
FFmpeg Capture Backend Implementation

Real capture using V4L2 cameras and PulseAudio sources, recorded to WebM
by an FFmpeg subprocess.

Device listing uses v4l2-ctl and pactl. When those are missing or fail,
probe_devices() falls back to globbing /dev/video* plus the default
PulseAudio source.

Live track toggles are sent to the running FFmpeg process on stdin as
filter commands, so muting or blanking the camera never restarts capture.
"""

import glob
import logging
import os
import shutil
import subprocess
import tempfile
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from config.settings import (
    AUDIO_CHANNELS,
    AUDIO_CODEC,
    AUDIO_INPUT_FORMAT,
    AUDIO_SAMPLE_RATE,
    CAMERA_WARMUP_TIME,
    DEFAULT_AUDIO_SOURCE,
    ENUMERATION_TOOL_TIMEOUT,
    FFMPEG_LOG_LEVEL,
    FFMPEG_STOP_TIMEOUT,
    RECORDING_MIME_TYPE,
    THREAD_QUEUE_SIZE,
    VIDEO_CODEC,
    VIDEO_DEVICE_GLOB,
    VIDEO_FPS,
    VIDEO_INPUT_FORMAT,
)
from core.event_bus import EventBus
from recording.constants import BackendEvent, DeviceKind, TrackKind
from recording.interfaces.capture_backend_interface import (
    CaptureBackend,
    CaptureError,
    CaptureProcessError,
    EnumerationError,
    InputSwitchError,
)
from recording.models.artifact import RecordingArtifact
from recording.models.capture import CaptureConstraints, CaptureStream
from recording.models.device import Device

# Named filters addressed by runtime commands
VIDEO_FILTER_NAME = "eq@camera"
AUDIO_FILTER_NAME = "volume@mic"

# FFmpeg stderr fragments mapped to device error names
FFMPEG_ERROR_PATTERNS = [
    ("Device or resource busy", "NotReadableError"),
    ("Permission denied", "NotAllowedError"),
    ("No such file or directory", "NotFoundError"),
    ("No such device", "NotFoundError"),
]


def classify_ffmpeg_error(stderr: str) -> Optional[str]:
    """
    Map FFmpeg error output to a device error name.

    Example:
        classify_ffmpeg_error("/dev/video0: Device or resource busy")
            -> "NotReadableError"
    """
    for pattern, error_name in FFMPEG_ERROR_PATTERNS:
        if pattern in stderr:
            return error_name
    return None


def parse_v4l2_devices(output: str) -> List[Device]:
    """
    Parse `v4l2-ctl --list-devices` output.

    Each block is a card name followed by indented device nodes; the
    first /dev/video node of a card is its capture node.

    Example input:
        HD Webcam C525 (usb-0000:01:00.0-1.2):
            /dev/video0
            /dev/video1
    """
    devices = []
    label = ""
    taken = False

    for line in output.splitlines():
        if not line.strip():
            continue
        if not line[0].isspace():
            label = line.split(" (", 1)[0].rstrip(":").strip()
            taken = False
            continue

        node = line.strip()
        if node.startswith("/dev/video") and not taken:
            devices.append(Device(node, DeviceKind.VIDEO_INPUT, label))
            taken = True

    return devices


def parse_pactl_sources(output: str) -> List[Device]:
    """
    Parse `pactl list short sources` output.

    Monitor sources (loopback of outputs) are skipped.
    """
    devices = []
    for line in output.splitlines():
        fields = line.split("\t")
        if len(fields) < 2:
            continue
        name = fields[1].strip()
        if not name or name.endswith(".monitor"):
            continue
        devices.append(Device(name, DeviceKind.AUDIO_INPUT, name))
    return devices


def build_ffmpeg_command(
    constraints: CaptureConstraints,
    output_file: str,
    fps: int = VIDEO_FPS,
    audio_enabled: bool = True,
    video_enabled: bool = True,
) -> List[str]:
    """
    Build the FFmpeg command line for one recording.

    Args:
        constraints: Devices, dimensions, length limit, mirroring
        output_file: Where FFmpeg writes the WebM file
        fps: Capture frame rate
        audio_enabled: Initial state of the audio track (False = muted)
        video_enabled: Initial state of the video track (False = black)

    Returns:
        Argument list for subprocess
    """
    command = ["ffmpeg", "-hide_banner", "-loglevel", FFMPEG_LOG_LEVEL]

    if constraints.video:
        command += [
            "-f", VIDEO_INPUT_FORMAT,
            "-thread_queue_size", str(THREAD_QUEUE_SIZE),
            "-framerate", str(fps),
            "-video_size", constraints.resolution,
            "-i", constraints.video_device_id or "/dev/video0",
        ]

    if constraints.audio:
        command += [
            "-f", AUDIO_INPUT_FORMAT,
            "-thread_queue_size", str(THREAD_QUEUE_SIZE),
            "-ac", str(AUDIO_CHANNELS),
            "-ar", str(AUDIO_SAMPLE_RATE),
            "-i", constraints.audio_device_id or DEFAULT_AUDIO_SOURCE,
        ]

    if constraints.video:
        video_filters = [
            f"scale={constraints.width}:{constraints.height}",
            f"{VIDEO_FILTER_NAME}=brightness={0 if video_enabled else -1}",
        ]
        if constraints.mirror_capture:
            video_filters.append("hflip")
        command += [
            "-vf", ",".join(video_filters),
            "-c:v", VIDEO_CODEC,
            "-deadline", "realtime",
            "-b:v", "1M",
        ]

    if constraints.audio:
        command += [
            "-af", f"{AUDIO_FILTER_NAME}=volume={1 if audio_enabled else 0}",
            "-c:a", AUDIO_CODEC,
        ]

    command += ["-t", str(constraints.max_length), "-y", output_file]
    return command


class FFmpegCaptureBackend(CaptureBackend):
    """
    Capture backend using FFmpeg.

    acquire_stream() checks the devices on a worker thread and publishes
    device_ready/device_error. start_record() launches FFmpeg in the
    background; a watcher thread publishes finish_record when FFmpeg
    exits on its own (length limit) or error when it crashes.

    Usage:
        backend = FFmpegCaptureBackend(EventBus())
        backend.acquire_stream(constraints)   # -> device_ready
        backend.start_record(stream)          # -> start_record
        backend.stop_record()                 # -> finish_record
        backend.cleanup()
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        fps: int = VIDEO_FPS,
        work_dir: Optional[Path] = None,
    ):
        """
        Initialize FFmpeg backend.

        Args:
            event_bus: Bus to publish lifecycle events on
            fps: Frame rate
            work_dir: Directory for in-progress recordings (temp dir if None)
        """
        super().__init__(event_bus)
        self.logger = logging.getLogger(__name__)
        self.fps = fps
        self.work_dir = Path(work_dir) if work_dir else Path(tempfile.gettempdir())

        self._lock = threading.Lock()
        self._stream: Optional[CaptureStream] = None
        self._latest_request_id: Optional[str] = None
        self._process: Optional[subprocess.Popen] = None
        self._output_file: Optional[Path] = None
        self._start_time: Optional[float] = None
        # Set once one path (stop, watcher, cancel) owns the process exit
        self._finalizing = False

        self.logger.info(f"FFmpeg Capture Backend initialized (fps: {fps})")

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    def enumerate_devices(self) -> List[Device]:
        video = self._run_tool(["v4l2-ctl", "--list-devices"])
        audio = self._run_tool(["pactl", "list", "short", "sources"])

        if video is None and audio is None:
            raise EnumerationError("Neither v4l2-ctl nor pactl could list devices")

        devices = parse_v4l2_devices(video or "") + parse_pactl_sources(audio or "")
        if not devices:
            raise EnumerationError("No capture devices reported")
        return devices

    def probe_devices(self) -> List[Device]:
        nodes = sorted(glob.glob(VIDEO_DEVICE_GLOB))
        devices = [
            Device(node, DeviceKind.VIDEO_INPUT, os.path.basename(node))
            for node in nodes
        ]
        devices.append(
            Device(DEFAULT_AUDIO_SOURCE, DeviceKind.AUDIO_INPUT, "Default microphone"),
        )
        return devices

    def _run_tool(self, command: List[str]) -> Optional[str]:
        """Run a listing tool, None if missing or failing"""
        if not shutil.which(command[0]):
            self.logger.debug(f"{command[0]} not installed")
            return None

        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
                timeout=ENUMERATION_TOOL_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.warning(f"{command[0]} failed: {e}")
            return None

        if result.returncode != 0:
            self.logger.warning(f"{command[0]} exited with code {result.returncode}")
            return None
        return result.stdout

    # =========================================================================
    # STREAM LIFECYCLE
    # =========================================================================

    def acquire_stream(self, constraints: CaptureConstraints) -> None:
        with self._lock:
            self._latest_request_id = constraints.request_id

        thread = threading.Thread(
            target=self._acquire_worker,
            args=(constraints,),
            daemon=True,
            name="StreamAcquire",
        )
        thread.start()

    def _acquire_worker(self, constraints: CaptureConstraints) -> None:
        if constraints.video and not constraints.video_device_id:
            nodes = sorted(glob.glob(VIDEO_DEVICE_GLOB))
            if nodes:
                constraints = replace(constraints, video_device_id=nodes[0])

        error_name = self.check_device(constraints.video_device_id) if constraints.video else None
        if error_name:
            self.logger.error(f"Camera unavailable: {error_name}")
            self.event_bus.publish(
                BackendEvent.DEVICE_ERROR,
                error_name=error_name,
                request_id=constraints.request_id,
            )
            return

        stream = CaptureStream(constraints=constraints)
        with self._lock:
            # An older request finishing late must not replace the live stream
            if constraints.request_id == self._latest_request_id:
                self._stream = stream

        self.logger.info(f"Stream ready: {stream.id} ({constraints.resolution})")
        self.event_bus.publish(BackendEvent.DEVICE_READY, stream=stream)

    def check_device(self, device_path: Optional[str]) -> Optional[str]:
        """
        Check that a video node can be opened.

        Returns:
            None if usable, otherwise the device error name
        """
        if not device_path or not os.path.exists(device_path):
            return "NotFoundError"

        try:
            fd = os.open(device_path, os.O_RDWR | os.O_NONBLOCK)
        except PermissionError:
            return "NotAllowedError"
        except OSError as e:
            self.logger.warning(f"Cannot open {device_path}: {e}")
            return "NotReadableError"

        os.close(fd)
        return None

    def release_stream(self, stream: CaptureStream) -> None:
        stream.active = False
        for kind in stream.tracks_enabled:
            stream.tracks_enabled[kind] = False
        with self._lock:
            if self._stream is stream:
                self._stream = None
        self.logger.debug(f"Stream released: {stream.id}")

    # =========================================================================
    # RECORDING
    # =========================================================================

    def start_record(self, stream: CaptureStream) -> None:
        with self._lock:
            if self._process is not None:
                raise CaptureError("Already recording")
            if not stream.active:
                raise CaptureError(f"Stream {stream.id} is not active")

        self.work_dir.mkdir(parents=True, exist_ok=True)
        output_file = self.work_dir / f"capture_{stream.id}.webm"

        command = build_ffmpeg_command(
            stream.constraints,
            str(output_file),
            fps=self.fps,
            audio_enabled=stream.is_track_enabled(TrackKind.AUDIO),
            video_enabled=stream.is_track_enabled(TrackKind.VIDEO),
        )
        self.logger.info(f"Starting FFmpeg capture to: {output_file}")
        self.logger.debug(f"FFmpeg command: {' '.join(command)}")

        try:
            # stdin carries runtime filter commands; stderr is read on exit
            process = subprocess.Popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                stdin=subprocess.PIPE,
            )
        except FileNotFoundError:
            raise CaptureError(
                "FFmpeg not found. Install with: sudo apt-get install ffmpeg",
            )

        # Give FFmpeg time to open the devices
        time.sleep(CAMERA_WARMUP_TIME)

        if process.poll() is not None:
            _, stderr = process.communicate()
            error_msg = stderr.decode("utf-8", errors="ignore").strip()
            if classify_ffmpeg_error(error_msg) == "NotReadableError":
                raise CaptureProcessError(f"Camera is busy: {error_msg}")
            raise CaptureProcessError(f"FFmpeg failed to start: {error_msg}")

        with self._lock:
            self._process = process
            self._output_file = output_file
            self._start_time = time.monotonic()
            self._finalizing = False

        watcher = threading.Thread(
            target=self._watch_process,
            args=(process,),
            daemon=True,
            name="FFmpegWatcher",
        )
        watcher.start()

        self.logger.info(f"Capture started (PID: {process.pid})")
        self.event_bus.publish(BackendEvent.START_RECORD)

    def stop_record(self) -> None:
        with self._lock:
            if self._process is None or self._finalizing:
                self.logger.warning("Not recording, nothing to stop")
                return
            self._finalizing = True
            process = self._process

        self.logger.info("Stopping capture...")

        # SIGTERM lets FFmpeg write the container trailer
        process.terminate()
        try:
            _, stderr = process.communicate(timeout=FFMPEG_STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            self.logger.warning("FFmpeg didn't stop gracefully, force killing")
            process.kill()
            _, stderr = process.communicate()

        if process.returncode not in (0, 255, -15):
            self.logger.warning(
                f"FFmpeg exited with code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='ignore').strip()}",
            )

        self._finish()

    def cancel_record(self) -> None:
        with self._lock:
            if self._process is None or self._finalizing:
                return
            self._finalizing = True
            process = self._process

        self.logger.info("Cancelling capture")
        process.kill()
        process.communicate()
        self._discard_output()

    def _watch_process(self, process: subprocess.Popen) -> None:
        """Publish the outcome when FFmpeg exits on its own"""
        returncode = process.wait()

        with self._lock:
            if self._process is not process or self._finalizing:
                return
            self._finalizing = True

        stderr = process.stderr.read().decode("utf-8", errors="ignore").strip()

        if returncode == 0:
            self.logger.info("FFmpeg finished (length limit reached)")
            self._finish()
        else:
            self.logger.error(f"FFmpeg crashed (code {returncode}): {stderr}")
            self._discard_output()
            self.event_bus.publish(
                BackendEvent.ERROR,
                message=f"Capture process exited with code {returncode}",
            )

    def _finish(self) -> None:
        """Read the finished file and publish it as the artifact"""
        output_file = self._output_file
        duration = time.monotonic() - self._start_time if self._start_time else 0.0

        try:
            data = output_file.read_bytes() if output_file else b""
        except OSError as e:
            self.logger.error(f"Cannot read recording {output_file}: {e}")
            data = b""

        self._discard_output()

        if not data:
            self.logger.error("Output file was not created!")
            self.event_bus.publish(BackendEvent.ERROR, message="Recording produced no data")
            return

        artifact = RecordingArtifact(
            data=data,
            mime_type=RECORDING_MIME_TYPE,
            duration_sec=duration,
        )
        self.logger.info(f"Recording finished: {artifact}")
        self.event_bus.publish(BackendEvent.FINISH_RECORD, artifact=artifact)

    def _discard_output(self) -> None:
        with self._lock:
            output_file = self._output_file
            self._process = None
            self._output_file = None
            self._start_time = None

        if output_file and output_file.exists():
            try:
                output_file.unlink()
            except OSError as e:
                self.logger.warning(f"Cannot remove {output_file}: {e}")

    def is_recording(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    # =========================================================================
    # LIVE CONTROLS
    # =========================================================================

    def set_video_input(self, device_id: str) -> None:
        self._switch_input(DeviceKind.VIDEO_INPUT, device_id)

    def set_audio_input(self, device_id: str) -> None:
        self._switch_input(DeviceKind.AUDIO_INPUT, device_id)

    def _switch_input(self, kind: DeviceKind, device_id: str) -> None:
        with self._lock:
            if self._process is not None:
                # FFmpeg inputs are fixed for the lifetime of the process
                raise InputSwitchError(f"Cannot switch {kind.value} while recording")
            if self._stream is None:
                raise InputSwitchError("No live stream")

            if kind == DeviceKind.VIDEO_INPUT:
                if not os.path.exists(device_id):
                    raise InputSwitchError(f"Video device not found: {device_id}")
                constraints = replace(self._stream.constraints, video_device_id=device_id)
            else:
                constraints = replace(self._stream.constraints, audio_device_id=device_id)

            self._stream.constraints = constraints

        self.logger.info(f"{kind.value} input: {device_id}")

    def set_track_enabled(self, kind: TrackKind, enabled: bool) -> None:
        with self._lock:
            if self._stream is None:
                raise CaptureError("No live stream")
            self._stream.tracks_enabled[kind] = enabled
            process = self._process

        if process is not None and process.poll() is None:
            self._send_command(process, kind, enabled)

    def _send_command(self, process: subprocess.Popen, kind: TrackKind, enabled: bool) -> None:
        if kind == TrackKind.AUDIO:
            command = f"c{AUDIO_FILTER_NAME} -1 volume {1 if enabled else 0}\n"
        else:
            command = f"c{VIDEO_FILTER_NAME} -1 brightness {0 if enabled else -1}\n"

        try:
            process.stdin.write(command.encode("utf-8"))
            process.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            raise CaptureError(f"Cannot send command to FFmpeg: {e}") from e

        self.logger.debug(f"FFmpeg command sent: {command.strip()}")

    # =========================================================================
    # AVAILABILITY / CLEANUP
    # =========================================================================

    def is_available(self) -> bool:
        if not shutil.which("ffmpeg"):
            self.logger.warning("FFmpeg not found in PATH")
            return False

        if not glob.glob(VIDEO_DEVICE_GLOB):
            self.logger.warning("No video devices found")
            return False

        return True

    def cleanup(self) -> None:
        self.logger.info("Cleaning up FFmpeg Capture Backend")
        try:
            self.cancel_record()
        except OSError as e:
            self.logger.error(f"Error cancelling capture: {e}")

        with self._lock:
            stream = self._stream
        if stream is not None:
            self.release_stream(stream)

        self.logger.info("FFmpeg Capture Backend cleanup complete")
