"""
Overlay Module

Time-windowed text overlays for a finished recording.

Public API:
    - OverlayScheduler: Overlay set bound to a recording duration
    - OverlayEditor: Follows a PlaybackSurface and edits a draft
    - Overlay / OverlayDraft: Models
    - Anchor: Nine placement positions
    - PlaybackSurface / MockPlayback: Player contract and test double

Usage:
    from overlay import Anchor, OverlayDraft, OverlayScheduler

    scheduler = OverlayScheduler(duration_sec=artifact.duration_sec)
    scheduler.add(OverlayDraft("Title", 0, 3, Anchor.TOP))
    scheduler.active_at(1.0)
"""

from overlay.constants import Anchor, parse_anchor
from overlay.controllers.overlay_editor import OverlayEditor
from overlay.controllers.overlay_scheduler import (
    OverlayError,
    OverlayNotFoundError,
    OverlayScheduler,
    OverlayValidationError,
)
from overlay.implementations.mock_playback import MockPlayback
from overlay.interfaces.playback_surface_interface import PlaybackSurface
from overlay.models.overlay import Overlay, OverlayDraft

__all__ = [
    "Anchor",
    "MockPlayback",
    "Overlay",
    "OverlayDraft",
    "OverlayEditor",
    "OverlayError",
    "OverlayNotFoundError",
    "OverlayScheduler",
    "OverlayValidationError",
    "PlaybackSurface",
    "parse_anchor",
]
