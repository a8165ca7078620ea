"""
Device Models

Capture devices as reported by the backend enumeration.
"""

from dataclasses import dataclass

from recording.constants import DeviceKind


@dataclass(frozen=True)
class Device:
    """
    A capture device (camera or microphone).

    Identity is the id. Instances are immutable; a refresh replaces the
    registry's lists wholesale.
    """

    id: str
    kind: DeviceKind
    label: str = ""

    @property
    def display_label(self) -> str:
        """Label for device pickers, with a fallback for unnamed devices"""
        if self.label:
            return self.label
        prefix = "Camera" if self.kind == DeviceKind.VIDEO_INPUT else "Microphone"
        return f"{prefix} {self.id[:8]}..."

    @property
    def is_video(self) -> bool:
        return self.kind == DeviceKind.VIDEO_INPUT

    @property
    def is_audio(self) -> bool:
        return self.kind == DeviceKind.AUDIO_INPUT

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
        }
