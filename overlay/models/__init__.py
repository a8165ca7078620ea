"""
Overlay Models Package
"""

from overlay.models.overlay import Overlay, OverlayDraft

# Public API
__all__ = [
    "Overlay",
    "OverlayDraft",
]
