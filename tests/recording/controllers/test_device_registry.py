"""
Device Registry Tests

Tests for DeviceRegistry showing:
- Enumeration and default selection
- Fallback enumeration after the retry delay
- Selection validation
- Stale refresh results

To run:
    pytest tests/recording/controllers/test_device_registry.py -v
"""

import pytest

from recording.constants import DeviceKind
from recording.controllers.device_registry import DeviceNotFoundError, DeviceRegistry
from recording.interfaces.capture_backend_interface import EnumerationError
from recording.models.device import Device

# =============================================================================
# REFRESH TESTS
# =============================================================================


@pytest.mark.unit
def test_registry_starts_empty(registry):
    """Test nothing is listed or selected before the first refresh."""
    assert registry.video_inputs == []
    assert registry.audio_inputs == []
    assert registry.get_selected(DeviceKind.VIDEO_INPUT) is None


@pytest.mark.unit
def test_refresh_splits_by_kind(registry):
    """Test refresh returns cameras and microphones separately."""
    videos, audios = registry.refresh()

    assert [d.id for d in videos] == ["cam-front", "cam-usb"]
    assert [d.id for d in audios] == ["mic-builtin", "mic-headset"]


@pytest.mark.unit
def test_refresh_selects_first_device(registry):
    """Test the first device of each kind is selected by default."""
    registry.refresh()

    assert registry.get_selected(DeviceKind.VIDEO_INPUT).id == "cam-front"
    assert registry.get_selected(DeviceKind.AUDIO_INPUT).id == "mic-builtin"


@pytest.mark.unit
def test_refresh_keeps_valid_selection(registry):
    """Test a selection that is still listed survives refresh."""
    registry.refresh()
    registry.select(DeviceKind.VIDEO_INPUT, "cam-usb")

    registry.refresh()

    assert registry.get_selected(DeviceKind.VIDEO_INPUT).id == "cam-usb"


@pytest.mark.unit
def test_refresh_replaces_vanished_selection(registry, mock_backend):
    """Test a selected device that disappeared falls back to the first one."""
    registry.refresh()
    registry.select(DeviceKind.VIDEO_INPUT, "cam-usb")

    mock_backend.set_devices([
        Device("cam-front", DeviceKind.VIDEO_INPUT, "Front Camera"),
        Device("mic-builtin", DeviceKind.AUDIO_INPUT, "Built-in Microphone"),
    ])
    registry.refresh()

    assert registry.get_selected(DeviceKind.VIDEO_INPUT).id == "cam-front"


@pytest.mark.unit
def test_refresh_with_no_devices(registry, mock_backend):
    """Test empty lists clear the selection."""
    mock_backend.set_devices([])

    videos, audios = registry.refresh()

    assert videos == [] and audios == []
    assert registry.get_selected(DeviceKind.AUDIO_INPUT) is None


# =============================================================================
# FALLBACK TESTS
# =============================================================================


@pytest.mark.unit
def test_fallback_enumeration_after_delay(registry, mock_backend, sleep_calls):
    """Test primary failure retries once with the direct device query."""
    mock_backend.simulate_enumeration_failure()
    mock_backend.set_probe_devices([Device("fallback-cam", DeviceKind.VIDEO_INPUT)])

    videos, audios = registry.refresh()

    assert sleep_calls == [1.0]
    assert [d.id for d in videos] == ["fallback-cam"]
    assert audios == []
    assert registry.last_refresh_used_fallback is True


@pytest.mark.unit
def test_fallback_failure_raises_and_keeps_lists(registry, mock_backend):
    """Test both paths failing raises and keeps the previous lists."""
    registry.refresh()
    mock_backend.simulate_enumeration_failure(fallback_fails=True)

    with pytest.raises(EnumerationError):
        registry.refresh()

    assert len(registry.video_inputs) == 2


@pytest.mark.unit
def test_no_sleep_when_delay_is_zero(mock_backend, sleep_calls):
    """Test a zero retry delay falls back immediately."""
    registry = DeviceRegistry(mock_backend, retry_delay=0, sleep=sleep_calls.append)
    mock_backend.simulate_enumeration_failure()

    registry.refresh()

    assert sleep_calls == []


# =============================================================================
# STALE REFRESH TESTS
# =============================================================================


@pytest.mark.unit
def test_stale_refresh_dropped(registry):
    """Test results are not committed when the guard says stale."""
    result = registry.refresh(is_current=lambda: False)

    assert result is None
    assert registry.video_inputs == []


# =============================================================================
# SELECTION TESTS
# =============================================================================


@pytest.mark.unit
def test_select_listed_device_is_idempotent(registry):
    """Test selecting the same listed id twice returns it and leaves the lists alone."""
    registry.refresh()
    videos_before = registry.video_inputs
    audios_before = registry.audio_inputs

    first = registry.select(DeviceKind.VIDEO_INPUT, "cam-usb")
    second = registry.select(DeviceKind.VIDEO_INPUT, "cam-usb")

    assert first == second == Device("cam-usb", DeviceKind.VIDEO_INPUT, "USB Camera")
    assert registry.get_selected(DeviceKind.VIDEO_INPUT) == first
    assert registry.video_inputs == videos_before
    assert registry.audio_inputs == audios_before


@pytest.mark.unit
def test_prefer_before_refresh_becomes_default(registry):
    """Test the device a stream opened wins over list order on first refresh."""
    assert registry.prefer(DeviceKind.VIDEO_INPUT, "cam-usb") is None

    registry.refresh()

    assert registry.get_selected(DeviceKind.VIDEO_INPUT).id == "cam-usb"
    assert registry.get_selected(DeviceKind.AUDIO_INPUT).id == "mic-builtin"


@pytest.mark.unit
def test_prefer_listed_device_selects_it(registry):
    """Test prefer selects immediately when the device is listed."""
    registry.refresh()

    device = registry.prefer(DeviceKind.AUDIO_INPUT, "mic-headset")

    assert device.id == "mic-headset"
    assert registry.get_selected(DeviceKind.AUDIO_INPUT) == device


@pytest.mark.unit
def test_prefer_unknown_device_falls_back_to_first(registry):
    """Test an unlisted preferred id does not block the default."""
    registry.prefer(DeviceKind.VIDEO_INPUT, "/dev/video9")

    registry.refresh()

    assert registry.get_selected(DeviceKind.VIDEO_INPUT).id == "cam-front"


@pytest.mark.unit
def test_select_unknown_device(registry):
    """Test selecting an unlisted id raises and changes nothing."""
    registry.refresh()

    with pytest.raises(DeviceNotFoundError) as exc_info:
        registry.select(DeviceKind.VIDEO_INPUT, "nope")

    assert exc_info.value.device_id == "nope"
    assert exc_info.value.kind == DeviceKind.VIDEO_INPUT
    assert registry.get_selected(DeviceKind.VIDEO_INPUT).id == "cam-front"


@pytest.mark.unit
def test_select_checks_kind(registry):
    """Test a microphone id is not a valid camera."""
    registry.refresh()

    with pytest.raises(DeviceNotFoundError):
        registry.select(DeviceKind.VIDEO_INPUT, "mic-headset")


@pytest.mark.unit
def test_restore_selection(registry):
    """Test a previous selection can be put back."""
    registry.refresh()
    previous = registry.get_selected(DeviceKind.AUDIO_INPUT)
    registry.select(DeviceKind.AUDIO_INPUT, "mic-headset")

    registry.restore_selection(DeviceKind.AUDIO_INPUT, previous)

    assert registry.get_selected(DeviceKind.AUDIO_INPUT) is previous


@pytest.mark.unit
def test_clear(registry):
    """Test clear forgets devices and selections."""
    registry.refresh()

    registry.clear()

    assert registry.video_inputs == []
    assert registry.get_selected(DeviceKind.VIDEO_INPUT) is None


@pytest.mark.unit
def test_get_status(registry):
    """Test status lists devices and selection ids."""
    registry.refresh()

    status = registry.get_status()

    assert status["selected_video"] == "cam-front"
    assert status["selected_audio"] == "mic-builtin"
    assert status["video_inputs"][1] == {
        "id": "cam-usb",
        "kind": "videoinput",
        "label": "USB Camera",
    }
