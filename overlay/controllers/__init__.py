"""
Overlay Controllers Package
"""

from overlay.controllers.overlay_editor import OverlayEditor
from overlay.controllers.overlay_scheduler import (
    OverlayError,
    OverlayNotFoundError,
    OverlayScheduler,
    OverlayValidationError,
)

# Public API
__all__ = [
    "OverlayEditor",
    "OverlayError",
    "OverlayNotFoundError",
    "OverlayScheduler",
    "OverlayValidationError",
]
