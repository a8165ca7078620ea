"""
Session Configuration Handler

Manages the optional YAML file with per-deployment session settings.
Provides defaults (from config/settings.py) and validation.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from config.settings import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_MIRRORED,
    DEFAULT_OVERLAY_END,
    DEFAULT_OVERLAY_START,
    ENUMERATION_RETRY_DELAY,
    EXPORT_DIR,
    MAX_RECORDING_LENGTH,
    MIRROR_CAPTURE,
    SESSION_CONFIG_PATH,
)
from recording.constants import AspectRatio, parse_aspect_ratio

CAPTURE_MODES = ("auto", "real", "mock")


class SessionConfig:
    """
    Session configuration with YAML file support.

    Reads from config/session.yaml if it exists, otherwise uses the
    defaults from config/settings.py. The file is never created
    implicitly; call save() to write one.

    Usage:
        config = SessionConfig()
        session = RecordingSession(
            backend,
            aspect_ratio=config.aspect_ratio,
            max_length=config.max_recording_length,
        )
    """

    DEFAULT_CONFIG_PATH = SESSION_CONFIG_PATH

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (None = use default)

        Raises:
            ValueError: If a value in the file is invalid
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH

        # Load configuration (defaults + file overrides)
        self._config = self._load_config()

    def _get_defaults(self) -> Dict[str, Any]:
        return {
            # Capture
            "capture_mode": "auto",
            "max_recording_length": MAX_RECORDING_LENGTH,
            "aspect_ratio": DEFAULT_ASPECT_RATIO,
            "mirrored": DEFAULT_MIRRORED,
            "mirror_capture": MIRROR_CAPTURE,

            # Devices
            "enumeration_retry_delay": ENUMERATION_RETRY_DELAY,

            # Overlays
            "overlay_default_start": DEFAULT_OVERLAY_START,
            "overlay_default_end": DEFAULT_OVERLAY_END,

            # Export
            "export_dir": str(EXPORT_DIR),
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file or use defaults"""
        config = self._get_defaults()

        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                self.logger.warning(
                    f"Failed to load config from {self.config_path}: {e}. "
                    f"Using defaults.",
                )
                file_config = {}

            if not isinstance(file_config, dict):
                self.logger.warning(
                    f"Ignoring {self.config_path}: expected a mapping, "
                    f"got {type(file_config).__name__}",
                )
                file_config = {}

            unknown = set(file_config) - set(config)
            if unknown:
                self.logger.warning(f"Unknown config keys ignored: {sorted(unknown)}")

            # File overrides defaults
            config.update({k: v for k, v in file_config.items() if k not in unknown})
            self.logger.info(f"Loaded session config from {self.config_path}")
        else:
            self.logger.debug(f"No config file at {self.config_path}, using defaults")

        self._validate_config(config)
        return config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration values"""
        if config["capture_mode"] not in CAPTURE_MODES:
            raise ValueError(
                f"capture_mode must be one of {CAPTURE_MODES}: {config['capture_mode']}",
            )

        if config["max_recording_length"] <= 0:
            raise ValueError("max_recording_length must be positive")

        # Raises ValueError for unknown presets
        parse_aspect_ratio(config["aspect_ratio"])

        if config["enumeration_retry_delay"] < 0:
            raise ValueError("enumeration_retry_delay cannot be negative")

        if config["overlay_default_start"] < 0:
            raise ValueError("overlay_default_start cannot be negative")

        if config["overlay_default_start"] >= config["overlay_default_end"]:
            raise ValueError("overlay_default_start must be before overlay_default_end")

    def save(self) -> None:
        """
        Write the current configuration to the YAML file.

        Raises:
            OSError: If the file cannot be written
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(
                self._config,
                f,
                default_flow_style=False,
                sort_keys=False,
                indent=2,
            )
        self.logger.info(f"Config saved to {self.config_path}")

    # =========================================================================
    # PROPERTY ACCESSORS
    # =========================================================================

    @property
    def capture_mode(self) -> str:
        """Backend selection: auto, real or mock"""
        return self._config["capture_mode"]

    @property
    def max_recording_length(self) -> float:
        """Recording auto-stops after this many seconds"""
        return float(self._config["max_recording_length"])

    @property
    def aspect_ratio(self) -> AspectRatio:
        return parse_aspect_ratio(self._config["aspect_ratio"])

    @property
    def mirrored(self) -> bool:
        """Initial preview mirroring"""
        return bool(self._config["mirrored"])

    @property
    def mirror_capture(self) -> bool:
        """Whether the mirror flip is baked into the recording"""
        return bool(self._config["mirror_capture"])

    @property
    def enumeration_retry_delay(self) -> float:
        return float(self._config["enumeration_retry_delay"])

    @property
    def overlay_default_start(self) -> float:
        return float(self._config["overlay_default_start"])

    @property
    def overlay_default_end(self) -> float:
        return float(self._config["overlay_default_end"])

    @property
    def export_dir(self) -> Path:
        return Path(self._config["export_dir"])

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def set(self, key: str, value: Any, save: bool = False) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: New value
            save: If True, save to file immediately

        Raises:
            KeyError: Unknown key
            ValueError: Invalid value (configuration unchanged)
        """
        if key not in self._config:
            raise KeyError(f"Unknown config key: {key}")

        updated = dict(self._config)
        updated[key] = value
        self._validate_config(updated)
        self._config = updated

        if save:
            self.save()

    def reload(self) -> None:
        """Reload configuration from file"""
        self._config = self._load_config()
        self.logger.info("Configuration reloaded")

    def to_dict(self) -> Dict[str, Any]:
        return self._config.copy()

    def __repr__(self) -> str:
        return f"SessionConfig(path={self.config_path})"
