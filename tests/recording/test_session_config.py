"""
Session Configuration Tests

Tests for the YAML-backed SessionConfig showing:
- Defaults when no file exists
- File overrides and ignored keys
- Validation of bad values
- set() and save()

To run:
    pytest tests/recording/test_session_config.py -v
"""

import pytest
import yaml

from recording.config import SessionConfig
from recording.constants import AspectRatio


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "session.yaml"


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))


# =============================================================================
# LOADING TESTS
# =============================================================================


@pytest.mark.unit
def test_defaults_without_file(config_path):
    """Test defaults apply and no file is created."""
    config = SessionConfig(config_path)

    assert config.capture_mode == "auto"
    assert config.aspect_ratio == AspectRatio.LANDSCAPE
    assert config.max_recording_length > 0
    assert config.overlay_default_start < config.overlay_default_end
    assert not config_path.exists()


@pytest.mark.unit
def test_file_overrides_defaults(config_path):
    """Test values in the YAML file win over defaults."""
    write_yaml(config_path, {
        "capture_mode": "mock",
        "max_recording_length": 30,
        "aspect_ratio": "9:16",
        "mirrored": False,
    })

    config = SessionConfig(config_path)

    assert config.capture_mode == "mock"
    assert config.max_recording_length == 30.0
    assert config.aspect_ratio == AspectRatio.PORTRAIT
    assert config.mirrored is False


@pytest.mark.unit
def test_unknown_keys_are_ignored(config_path):
    """Test unrecognized keys do not leak into the configuration."""
    write_yaml(config_path, {"capture_mode": "mock", "upload_to": "somewhere"})

    config = SessionConfig(config_path)

    assert config.get("upload_to") is None
    assert "upload_to" not in config.to_dict()


@pytest.mark.unit
def test_non_mapping_file_uses_defaults(config_path):
    """Test a YAML list is ignored instead of crashing."""
    config_path.write_text("- just\n- a list\n")

    config = SessionConfig(config_path)

    assert config.capture_mode == "auto"


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides",
    [
        {"capture_mode": "turbo"},
        {"max_recording_length": 0},
        {"aspect_ratio": "4:3"},
        {"enumeration_retry_delay": -1},
        {"overlay_default_start": 5, "overlay_default_end": 5},
    ],
)
def test_invalid_values_raise(config_path, overrides):
    """Test invalid file values are rejected."""
    write_yaml(config_path, overrides)

    with pytest.raises(ValueError):
        SessionConfig(config_path)


# =============================================================================
# UPDATE TESTS
# =============================================================================


@pytest.mark.unit
def test_set_validates_and_keeps_old_value(config_path):
    """Test a rejected set() leaves the configuration unchanged."""
    config = SessionConfig(config_path)

    with pytest.raises(ValueError):
        config.set("max_recording_length", -5)

    assert config.max_recording_length > 0


@pytest.mark.unit
def test_set_unknown_key(config_path):
    """Test unknown keys raise KeyError."""
    config = SessionConfig(config_path)

    with pytest.raises(KeyError):
        config.set("nonsense", 1)


@pytest.mark.unit
def test_save_and_reload(config_path):
    """Test saved values survive a reload."""
    config = SessionConfig(config_path)
    config.set("aspect_ratio", "1:1", save=True)

    assert config_path.exists()

    reloaded = SessionConfig(config_path)
    assert reloaded.aspect_ratio == AspectRatio.SQUARE
