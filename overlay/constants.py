"""
Overlay Constants

Anchor positions and defaults for time-windowed overlays.
"""

from enum import Enum

from config.settings import DEFAULT_OVERLAY_END, DEFAULT_OVERLAY_START


class Anchor(Enum):
    """
    Where an overlay is placed on the video.

    Values are the `align` names understood by the player overlay plugin.
    """

    TOP_LEFT = "top-left"
    TOP = "top"
    TOP_RIGHT = "top-right"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM = "bottom"
    BOTTOM_RIGHT = "bottom-right"


DEFAULT_ANCHOR = Anchor.TOP_LEFT

# New drafts cover this window (seconds)
DRAFT_START_SEC = DEFAULT_OVERLAY_START
DRAFT_END_SEC = DEFAULT_OVERLAY_END


def parse_anchor(value) -> Anchor:
    """
    Convert "bottom-right" style strings (or Anchor) to Anchor.

    Raises:
        ValueError: If the value is not one of the nine positions
    """
    if isinstance(value, Anchor):
        return value
    try:
        return Anchor(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(anchor.value for anchor in Anchor)
        raise ValueError(f"Unknown anchor: {value} (expected one of {valid})")
