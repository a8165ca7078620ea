"""
Device Registry

Tracks the capture devices the backend reports and which one of each
kind is currently selected.

Enumeration has two paths because the primary one can complete without
usable results on some platforms:
1. backend.enumerate_devices()
2. after a fixed delay, backend.probe_devices() (direct media-device query)
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from config.settings import ENUMERATION_RETRY_DELAY
from recording.constants import DeviceKind
from recording.interfaces.capture_backend_interface import (
    CaptureBackend,
    EnumerationError,
)
from recording.models.device import Device


class DeviceNotFoundError(Exception):
    """Requested device id is not in the current device list"""

    def __init__(self, kind: DeviceKind, device_id: str):
        super().__init__(f"{kind.value} device not found: {device_id}")
        self.kind = kind
        self.device_id = device_id


class DeviceRegistry:
    """
    Current device lists and per-kind selection.

    Usage:
        registry = DeviceRegistry(backend)
        videos, audios = registry.refresh()
        registry.select(DeviceKind.VIDEO_INPUT, videos[1].id)
    """

    def __init__(
        self,
        backend: CaptureBackend,
        retry_delay: float = ENUMERATION_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize registry.

        Args:
            backend: Capture backend to enumerate with
            retry_delay: Seconds to wait before the fallback probe
            sleep: Sleep function (tests pass a no-op)
        """
        self.logger = logging.getLogger(__name__)
        self.backend = backend
        self.retry_delay = retry_delay
        self._sleep = sleep

        self._lock = threading.Lock()
        self._devices: Dict[DeviceKind, List[Device]] = {
            DeviceKind.VIDEO_INPUT: [],
            DeviceKind.AUDIO_INPUT: [],
        }
        self._selected: Dict[DeviceKind, Optional[Device]] = {
            DeviceKind.VIDEO_INPUT: None,
            DeviceKind.AUDIO_INPUT: None,
        }
        # Device ids a live stream is using that were not listed yet
        self._preferred: Dict[DeviceKind, Optional[str]] = {
            DeviceKind.VIDEO_INPUT: None,
            DeviceKind.AUDIO_INPUT: None,
        }

        self.last_refresh_used_fallback = False

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    def refresh(
        self,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> Optional[Tuple[List[Device], List[Device]]]:
        """
        Re-enumerate devices and replace the lists.

        Args:
            is_current: Optional guard checked right before the results are
                committed. When it returns False the results are dropped
                (the requester was torn down meanwhile).

        Returns:
            (video_inputs, audio_inputs), or None if the results were dropped

        Raises:
            EnumerationError: If both the primary enumeration and the
                fallback probe fail. Previous lists are kept.
        """
        used_fallback = False

        try:
            devices = self.backend.enumerate_devices()
        except EnumerationError as e:
            self.logger.warning(
                f"Device enumeration failed ({e}), "
                f"retrying with direct probe in {self.retry_delay}s",
            )
            devices = self._probe_after_delay(e)
            used_fallback = True

        if is_current is not None and not is_current():
            self.logger.info("Discarding device list from stale refresh")
            return None

        video_inputs = [d for d in devices if d.kind == DeviceKind.VIDEO_INPUT]
        audio_inputs = [d for d in devices if d.kind == DeviceKind.AUDIO_INPUT]

        with self._lock:
            self._devices[DeviceKind.VIDEO_INPUT] = video_inputs
            self._devices[DeviceKind.AUDIO_INPUT] = audio_inputs
            self._apply_default_selection(DeviceKind.VIDEO_INPUT)
            self._apply_default_selection(DeviceKind.AUDIO_INPUT)
            self.last_refresh_used_fallback = used_fallback

        self.logger.info(
            f"Devices refreshed - Video: {len(video_inputs)}, "
            f"Audio: {len(audio_inputs)}"
            + (" (fallback probe)" if used_fallback else ""),
        )

        return list(video_inputs), list(audio_inputs)

    def _probe_after_delay(self, primary_error: EnumerationError) -> List[Device]:
        """Fallback path: one retry after a fixed delay"""
        if self.retry_delay > 0:
            self._sleep(self.retry_delay)

        try:
            devices = self.backend.probe_devices()
        except EnumerationError as e:
            self.logger.error(f"Fallback enumeration failed: {e}")
            raise EnumerationError(
                f"Device enumeration failed: {primary_error}; fallback: {e}",
            ) from e

        self.logger.info(f"Fallback enumeration found {len(devices)} device(s)")
        return devices

    def _apply_default_selection(self, kind: DeviceKind) -> None:
        """
        Pick a device when nothing valid is selected: the one the live
        stream uses if known, otherwise the first listed. A vanished
        selection falls back to the first listed.

        Must be called with the lock held.
        """
        devices = self._devices[kind]
        selected = self._selected[kind]

        if selected is not None and any(d.id == selected.id for d in devices):
            return

        default = devices[0] if devices else None
        if selected is not None:
            self.logger.warning(
                f"Selected {kind.value} device {selected.id} disappeared",
            )
        elif self._preferred[kind] is not None:
            default = self._find(kind, self._preferred[kind]) or default

        self._preferred[kind] = None
        self._selected[kind] = default
        if self._selected[kind] is not None:
            self.logger.info(
                f"Selected default {kind.value} device: {self._selected[kind].id}",
            )

    # =========================================================================
    # SELECTION
    # =========================================================================

    def select(self, kind: DeviceKind, device_id: str) -> Device:
        """
        Select a device of a kind by id.

        Raises:
            DeviceNotFoundError: If device_id is not in the current list.
                Selection is left unchanged.
        """
        with self._lock:
            device = self._find(kind, device_id)
            if device is None:
                self.logger.error(f"{kind.value} device not found: {device_id}")
                raise DeviceNotFoundError(kind, device_id)

            self._selected[kind] = device
            self._preferred[kind] = None

        self.logger.debug(f"Selected {kind.value} device: {device_id}")
        return device

    def prefer(self, kind: DeviceKind, device_id: str) -> Optional[Device]:
        """
        Record the device a live stream is actually using.

        Selected right away when listed; otherwise it becomes the default
        chosen by the next refresh.

        Returns:
            The selected device, or None if it is not listed yet
        """
        with self._lock:
            device = self._find(kind, device_id)
            if device is None:
                self._preferred[kind] = device_id
                return None

            self._selected[kind] = device
            self._preferred[kind] = None

        self.logger.debug(f"Stream uses {kind.value} device: {device_id}")
        return device

    def restore_selection(self, kind: DeviceKind, device: Optional[Device]) -> None:
        """Put back a previous selection (used when a live switch fails)"""
        with self._lock:
            self._selected[kind] = device

    def get_selected(self, kind: DeviceKind) -> Optional[Device]:
        with self._lock:
            return self._selected[kind]

    def _find(self, kind: DeviceKind, device_id: str) -> Optional[Device]:
        for device in self._devices[kind]:
            if device.id == device_id:
                return device
        return None

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def devices(self, kind: DeviceKind) -> List[Device]:
        with self._lock:
            return list(self._devices[kind])

    @property
    def video_inputs(self) -> List[Device]:
        return self.devices(DeviceKind.VIDEO_INPUT)

    @property
    def audio_inputs(self) -> List[Device]:
        return self.devices(DeviceKind.AUDIO_INPUT)

    def clear(self) -> None:
        """Forget all devices and selections"""
        with self._lock:
            for kind in self._devices:
                self._devices[kind] = []
                self._selected[kind] = None
                self._preferred[kind] = None

    def get_status(self) -> dict:
        with self._lock:
            return {
                "video_inputs": [d.to_dict() for d in self._devices[DeviceKind.VIDEO_INPUT]],
                "audio_inputs": [d.to_dict() for d in self._devices[DeviceKind.AUDIO_INPUT]],
                "selected_video": (
                    self._selected[DeviceKind.VIDEO_INPUT].id
                    if self._selected[DeviceKind.VIDEO_INPUT] else None
                ),
                "selected_audio": (
                    self._selected[DeviceKind.AUDIO_INPUT].id
                    if self._selected[DeviceKind.AUDIO_INPUT] else None
                ),
                "last_refresh_used_fallback": self.last_refresh_used_fallback,
            }
