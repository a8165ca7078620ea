"""
Central Configuration File

ALL configuration values live here. This is the single source of truth.

Guidelines:
- Machine-specific overrides go in .env, NOT here
- Import these settings in modules: from config.settings import MAX_RECORDING_LENGTH
- Per-deployment session tweaks can also live in a YAML file
  (see recording/config.py)
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# RECORDING CONFIGURATION
# =============================================================================

# Maximum recording length (seconds). Recording auto-stops when reached.
MAX_RECORDING_LENGTH = float(os.getenv("MAX_RECORDING_LENGTH", "120"))

# Aspect ratio used when a session is created without an explicit one
# One of: "16:9", "1:1", "9:16"
DEFAULT_ASPECT_RATIO = os.getenv("DEFAULT_ASPECT_RATIO", "16:9")

# Preview mirroring is on by default (front-facing cameras feel natural)
DEFAULT_MIRRORED = os.getenv("DEFAULT_MIRRORED", "true").lower() == "true"

# Bake the mirror flip into the recorded pixels.
# Off: mirroring only affects the preview.
MIRROR_CAPTURE = os.getenv("MIRROR_CAPTURE", "false").lower() == "true"

# Capture both tracks by default
CAPTURE_AUDIO = True
CAPTURE_VIDEO = True

# How often the session monitor checks elapsed time (seconds)
MONITOR_CHECK_INTERVAL = 0.1

# =============================================================================
# DEVICE ENUMERATION
# =============================================================================

# Delay before the fallback device probe runs after the primary
# enumeration fails (seconds)
ENUMERATION_RETRY_DELAY = float(os.getenv("ENUMERATION_RETRY_DELAY", "1.0"))

# Timeout for external enumeration tools (v4l2-ctl, pactl)
ENUMERATION_TOOL_TIMEOUT = 2.0

# Video devices probed by the fallback path
VIDEO_DEVICE_GLOB = "/dev/video*"

# PulseAudio source used when nothing else can be listed
DEFAULT_AUDIO_SOURCE = "default"

# =============================================================================
# FFMPEG CAPTURE CONFIGURATION
# =============================================================================

VIDEO_FPS = 30
VIDEO_INPUT_FORMAT = "v4l2"
AUDIO_INPUT_FORMAT = "pulse"  # Use PulseAudio (not raw ALSA)
AUDIO_CHANNELS = 1
AUDIO_SAMPLE_RATE = 44100  # Hz
VIDEO_CODEC = "libvpx"  # WebM output, matches browser recordings
AUDIO_CODEC = "libopus"
RECORDING_MIME_TYPE = "video/webm"
FFMPEG_LOG_LEVEL = "error"
THREAD_QUEUE_SIZE = 512

# Time given to FFmpeg to open the devices before we call it started
CAMERA_WARMUP_TIME = 0.5  # seconds

# Time FFmpeg gets to finalize the file after a stop request
FFMPEG_STOP_TIMEOUT = 5.0  # seconds

# =============================================================================
# OVERLAY CONFIGURATION
# =============================================================================

# Default time window of a new overlay draft (seconds)
DEFAULT_OVERLAY_START = 0
DEFAULT_OVERLAY_END = 5

# Base size of the overlay editor player (pixels)
EDITOR_BASE_SIZE = 320

# =============================================================================
# EXPORT CONFIGURATION
# =============================================================================

EXPORT_DIR = Path(os.getenv("EXPORT_DIR", "./exports"))
EXPORT_FILENAME_PREFIX = "recorded-video"
OVERLAY_EXPORT_SUFFIX = ".overlays.json"

# Optional YAML file with session overrides
SESSION_CONFIG_PATH = Path(os.getenv("SESSION_CONFIG_PATH", "config/session.yaml"))

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_DIR = os.getenv("LOG_DIR", "/var/log/capture-studio")
LOG_SERVICE_FILE = "service.log"
LOG_BACKUP_COUNT = 7
