"""
Recording Artifact Model

The recorded media payload. Produced once per recording, never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime

from config.settings import RECORDING_MIME_TYPE

# File extensions by container MIME type
MIME_EXTENSIONS = {
    "video/webm": "webm",
    "video/mp4": "mp4",
    "video/x-matroska": "mkv",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
}


@dataclass(frozen=True)
class RecordingArtifact:
    """
    Immutable recorded media.

    Safe to share by reference between the overlay editor and any
    export consumer.
    """

    data: bytes
    mime_type: str = RECORDING_MIME_TYPE
    duration_sec: float = 0.0
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.duration_sec < 0:
            raise ValueError(f"duration_sec cannot be negative: {self.duration_sec}")

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """File extension for the container type (without the dot)"""
        base_type = self.mime_type.split(";", 1)[0].strip().lower()
        return MIME_EXTENSIONS.get(base_type, "webm")

    def to_dict(self) -> dict:
        """Metadata only, the payload is not included"""
        return {
            "mime_type": self.mime_type,
            "duration_sec": self.duration_sec,
            "size_bytes": self.size_bytes,
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"RecordingArtifact(mime_type={self.mime_type!r}, "
            f"duration_sec={self.duration_sec:.1f}, size_bytes={self.size_bytes})"
        )
