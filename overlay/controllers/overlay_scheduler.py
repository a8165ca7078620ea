"""
Overlay Scheduler

Holds the overlays of one recording and answers which of them are
visible at a playback time.

Bound to the recording duration: every overlay must satisfy
0 <= start_sec < end_sec <= duration_sec. Overlays are kept in insertion
order and may overlap freely.
"""

import json
import logging
import math
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from overlay.constants import parse_anchor
from overlay.models.overlay import Overlay, OverlayDraft


class OverlayError(Exception):
    """Base class for overlay scheduling errors"""
    pass


class OverlayValidationError(OverlayError):
    """Draft rejected; the overlay set is unchanged"""
    pass


class OverlayNotFoundError(OverlayError):
    """No overlay with the given id"""

    def __init__(self, overlay_id: str):
        super().__init__(f"Overlay not found: {overlay_id}")
        self.overlay_id = overlay_id


class OverlayScheduler:
    """
    Ordered overlay set for a recording of fixed duration.

    Usage:
        scheduler = OverlayScheduler(duration_sec=12.0)
        scheduler.add(OverlayDraft("Hello", 0, 3, Anchor.BOTTOM))
        scheduler.active_at(1.5)   # [Overlay(content="Hello", ...)]
    """

    def __init__(self, duration_sec: float):
        """
        Initialize scheduler.

        Args:
            duration_sec: Length of the recording in seconds

        Raises:
            ValueError: If duration_sec is negative or not finite
        """
        if not _is_number(duration_sec) or duration_sec < 0:
            raise ValueError(f"Invalid duration: {duration_sec}")

        self.logger = logging.getLogger(__name__)
        self.duration_sec = float(duration_sec)
        self._overlays: List[Overlay] = []
        self._lock = threading.Lock()

        self.logger.debug(f"Overlay scheduler created ({self.duration_sec:.1f}s)")

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, draft: OverlayDraft) -> Overlay:
        """
        Validate a draft and append it as a new overlay.

        Returns:
            The committed overlay (with a fresh unique id)

        Raises:
            OverlayValidationError: If the draft is invalid
        """
        self.validate(draft)
        anchor = parse_anchor(draft.anchor)

        with self._lock:
            overlay = Overlay(
                id=self._new_id(),
                content=draft.content,
                start_sec=float(draft.start_sec),
                end_sec=float(draft.end_sec),
                anchor=anchor,
            )
            self._overlays.append(overlay)

        self.logger.info(
            f"Overlay added: {overlay.id} "
            f"({overlay.start_sec:g}-{overlay.end_sec:g}s, {anchor.value})",
        )
        return overlay

    def remove(self, overlay_id: str) -> Overlay:
        """
        Remove an overlay by id.

        Returns:
            The removed overlay

        Raises:
            OverlayNotFoundError: If no overlay has this id
        """
        with self._lock:
            for index, overlay in enumerate(self._overlays):
                if overlay.id == overlay_id:
                    del self._overlays[index]
                    break
            else:
                raise OverlayNotFoundError(overlay_id)

        self.logger.info(f"Overlay removed: {overlay_id}")
        return overlay

    def clear(self) -> None:
        with self._lock:
            self._overlays.clear()

    def validate(self, draft: OverlayDraft) -> None:
        """
        Check a draft against the overlay rules.

        Raises:
            OverlayValidationError: Describing the first rule broken
        """
        if not isinstance(draft.content, str) or not draft.content.strip():
            raise OverlayValidationError("Overlay content cannot be empty")

        if not _is_number(draft.start_sec) or not _is_number(draft.end_sec):
            raise OverlayValidationError(
                f"Overlay times must be finite numbers: "
                f"start={draft.start_sec!r}, end={draft.end_sec!r}",
            )

        if draft.start_sec < 0:
            raise OverlayValidationError(
                f"Overlay start cannot be negative: {draft.start_sec}",
            )

        if draft.start_sec >= draft.end_sec:
            raise OverlayValidationError(
                f"Overlay start ({draft.start_sec}) must be before end ({draft.end_sec})",
            )

        if draft.end_sec > self.duration_sec:
            raise OverlayValidationError(
                f"Overlay end ({draft.end_sec}) is past the end of the "
                f"recording ({self.duration_sec:g}s)",
            )

        try:
            parse_anchor(draft.anchor)
        except ValueError as e:
            raise OverlayValidationError(str(e)) from e

    def _new_id(self) -> str:
        """Unique among current overlays. Lock must be held."""
        existing = {overlay.id for overlay in self._overlays}
        while True:
            overlay_id = uuid4().hex[:12]
            if overlay_id not in existing:
                return overlay_id

    # =========================================================================
    # QUERIES
    # =========================================================================

    def active_at(self, time_sec: float) -> List[Overlay]:
        """
        All overlays visible at time_sec (bounds inclusive), in insertion order.
        """
        with self._lock:
            return [o for o in self._overlays if o.is_active_at(time_sec)]

    def get(self, overlay_id: str) -> Optional[Overlay]:
        with self._lock:
            for overlay in self._overlays:
                if overlay.id == overlay_id:
                    return overlay
        return None

    @property
    def overlays(self) -> List[Overlay]:
        """Snapshot in insertion order"""
        with self._lock:
            return list(self._overlays)

    def __len__(self) -> int:
        with self._lock:
            return len(self._overlays)

    def __iter__(self):
        return iter(self.overlays)

    # =========================================================================
    # EXPORT
    # =========================================================================

    def to_overlay_data(self) -> List[Dict[str, Any]]:
        """
        Overlays in the player overlay plugin format.

        Example:
            [{"content": "Hello", "start": 0.0, "end": 3.0, "align": "bottom"}]
        """
        return [overlay.to_overlay_data() for overlay in self.overlays]

    def export_json(self, path: Path) -> Path:
        """
        Write to_overlay_data() as JSON.

        Raises:
            OSError: If the file cannot be written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_overlay_data(), f, indent=2)

        self.logger.info(f"Exported {len(self)} overlay(s) to {path}")
        return path


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
