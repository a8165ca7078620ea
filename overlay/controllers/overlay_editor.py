"""
Overlay Editor

Binds an OverlayScheduler to a PlaybackSurface: keeps the list of
visible overlays in step with playback time and holds the draft form
used to create new overlays.
"""

import logging
import math
from typing import Callable, List, Optional, Tuple

from overlay.constants import DRAFT_END_SEC, DRAFT_START_SEC, parse_anchor
from overlay.controllers.overlay_scheduler import (
    OverlayScheduler,
    OverlayValidationError,
)
from overlay.interfaces.playback_surface_interface import PlaybackSurface
from overlay.models.overlay import Overlay, OverlayDraft


class OverlayEditor:
    """
    Overlay editing session for one recording.

    Usage:
        editor = OverlayEditor(scheduler, playback)
        editor.on_visible_changed = lambda overlays: render(overlays)

        editor.update_draft(content="Hello", anchor="bottom")
        editor.set_current_time_as_start()
        editor.commit_draft()
        editor.close()
    """

    def __init__(
        self,
        scheduler: OverlayScheduler,
        playback: PlaybackSurface,
        draft_start_sec: float = DRAFT_START_SEC,
        draft_end_sec: float = DRAFT_END_SEC,
    ):
        self.logger = logging.getLogger(__name__)
        self.scheduler = scheduler
        self.playback = playback
        self._draft_start_sec = draft_start_sec
        self._draft_end_sec = draft_end_sec

        self.draft = self._new_draft()
        self._visible: List[Overlay] = []
        self._closed = False

        self.on_visible_changed: Optional[Callable[[List[Overlay]], None]] = None

        playback.subscribe_time_advanced(self._handle_time_advanced)
        self.refresh()

    @property
    def visible(self) -> List[Overlay]:
        """Overlays active at the current playback time"""
        return list(self._visible)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def frame_size(self) -> Optional[Tuple[int, int]]:
        """Size of the player the overlays are laid out on"""
        return self.playback.frame_size

    # =========================================================================
    # VISIBLE SET
    # =========================================================================

    def _handle_time_advanced(self, time_sec: float) -> None:
        if self._closed:
            return
        self._update_visible(time_sec)

    def refresh(self) -> List[Overlay]:
        """Recompute the visible set at the current playback time"""
        self._update_visible(self.playback.current_time_sec)
        return self.visible

    def _update_visible(self, time_sec: float) -> None:
        active = self.scheduler.active_at(time_sec)
        if [o.id for o in active] == [o.id for o in self._visible]:
            return

        self._visible = active
        if self.on_visible_changed:
            try:
                self.on_visible_changed(list(active))
            except Exception as e:
                self.logger.error(f"Error in visible changed callback: {e}")

    # =========================================================================
    # DRAFT
    # =========================================================================

    def _new_draft(self) -> OverlayDraft:
        return OverlayDraft(start_sec=self._draft_start_sec, end_sec=self._draft_end_sec)

    def update_draft(
        self,
        content: Optional[str] = None,
        start_sec: Optional[float] = None,
        end_sec: Optional[float] = None,
        anchor=None,
    ) -> OverlayDraft:
        """
        Change draft fields; None leaves a field as is.

        Values are checked on commit, except the anchor which must be
        one of the nine positions.

        Raises:
            OverlayValidationError: Unknown anchor
        """
        if anchor is not None:
            try:
                self.draft.anchor = parse_anchor(anchor)
            except ValueError as e:
                raise OverlayValidationError(str(e)) from e
        if content is not None:
            self.draft.content = content
        if start_sec is not None:
            self.draft.start_sec = start_sec
        if end_sec is not None:
            self.draft.end_sec = end_sec
        return self.draft

    def set_current_time_as_start(self) -> int:
        """Use the playback position (whole seconds) as draft start"""
        self.draft.start_sec = math.floor(self.playback.current_time_sec)
        return self.draft.start_sec

    def set_current_time_as_end(self) -> int:
        """Use the playback position (whole seconds) as draft end"""
        self.draft.end_sec = math.floor(self.playback.current_time_sec)
        return self.draft.end_sec

    def reset_draft(self) -> None:
        self.draft = self._new_draft()

    def commit_draft(self) -> Overlay:
        """
        Add the draft to the scheduler and start a fresh draft.

        Raises:
            OverlayValidationError: Draft kept as is so it can be fixed
        """
        overlay = self.scheduler.add(self.draft)
        self.reset_draft()
        self.refresh()
        return overlay

    def remove(self, overlay_id: str) -> Overlay:
        """
        Remove an overlay.

        Raises:
            OverlayNotFoundError: Unknown id
        """
        overlay = self.scheduler.remove(overlay_id)
        self.refresh()
        return overlay

    def close(self) -> None:
        """Stop following playback. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.playback.unsubscribe_time_advanced(self._handle_time_advanced)
        self.logger.debug("Overlay editor closed")
