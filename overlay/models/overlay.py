"""
Overlay Models

A committed overlay (immutable) and the editable draft the form holds
before commit.
"""

from dataclasses import dataclass

from overlay.constants import DEFAULT_ANCHOR, DRAFT_END_SEC, DRAFT_START_SEC, Anchor


@dataclass(frozen=True)
class Overlay:
    """
    Text shown over the video between start_sec and end_sec (inclusive).

    Only OverlayScheduler creates these, after validation.
    """

    id: str
    content: str
    start_sec: float
    end_sec: float
    anchor: Anchor = DEFAULT_ANCHOR

    def is_active_at(self, time_sec: float) -> bool:
        return self.start_sec <= time_sec <= self.end_sec

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    def to_overlay_data(self) -> dict:
        """Entry in the player overlay plugin format"""
        return {
            "content": self.content,
            "start": self.start_sec,
            "end": self.end_sec,
            "align": self.anchor.value,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "start_sec": self.start_sec,
            "end_sec": self.end_sec,
            "anchor": self.anchor.value,
        }


@dataclass
class OverlayDraft:
    """Form state for the overlay being edited"""

    content: str = ""
    start_sec: float = DRAFT_START_SEC
    end_sec: float = DRAFT_END_SEC
    anchor: Anchor = DEFAULT_ANCHOR
