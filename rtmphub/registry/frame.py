"""Stream keys and the frames broadcast to subscribers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = ["StreamKey", "FrameType", "BroadcastFrame"]

_MAX_TIMESTAMP = 0xFFFFFFFF


@dataclass(frozen=True)
class StreamKey:
    """Unique identifier of a stream: application name plus stream name."""

    app: str
    name: str

    def __str__(self) -> str:
        return f"{self.app}/{self.name}"


class FrameType(Enum):
    """Kind of a broadcast frame."""

    VIDEO = "video"
    AUDIO = "audio"
    METADATA = "metadata"


@dataclass(frozen=True)
class BroadcastFrame:
    """A media frame delivered to every subscriber of a stream."""

    frame_type: FrameType
    timestamp: int
    data: bytes
    is_keyframe: bool = False
    is_header: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.timestamp <= _MAX_TIMESTAMP:
            raise ValueError(f"timestamp out of 32-bit range: {self.timestamp}")

    @classmethod
    def video(
        cls, timestamp: int, data: bytes, is_keyframe: bool, is_header: bool
    ) -> BroadcastFrame:
        """Create a video frame."""
        return cls(FrameType.VIDEO, timestamp, bytes(data), is_keyframe, is_header)

    @classmethod
    def audio(cls, timestamp: int, data: bytes, is_header: bool) -> BroadcastFrame:
        """Create an audio frame."""
        return cls(FrameType.AUDIO, timestamp, bytes(data), False, is_header)

    @classmethod
    def metadata(cls, data: bytes) -> BroadcastFrame:
        """Create a metadata (onMetaData) frame with timestamp 0."""
        return cls(FrameType.METADATA, 0, bytes(data), False, False)