"""State of one RTMP message stream inside a session."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

__all__ = ["StreamMode", "StreamState"]


class StreamMode(Enum):
    """What a message stream is doing."""

    IDLE = "idle"
    PUBLISHING = "publishing"
    PLAYING = "playing"


@dataclass
class StreamState:
    """Per-stream mode, key and media counters. Times are monotonic seconds."""

    id: int
    mode: StreamMode = StreamMode.IDLE
    stream_key: Optional[str] = None
    publish_type: Optional[str] = None
    started_at: Optional[float] = None
    has_video_header: bool = False
    has_audio_header: bool = False
    has_metadata: bool = False
    last_video_ts: int = 0
    last_audio_ts: int = 0
    video_frames: int = 0
    audio_frames: int = 0
    keyframes: int = 0
    bytes_received: int = 0

    def start_publish(self, stream_key: str, publish_type: str) -> None:
        """Switch the stream to publishing under ``stream_key``."""
        self.mode = StreamMode.PUBLISHING
        self.stream_key = stream_key
        self.publish_type = publish_type
        self.started_at = time.monotonic()

    def start_play(self, stream_name: str) -> None:
        """Switch the stream to playing ``stream_name``."""
        self.mode = StreamMode.PLAYING
        self.stream_key = stream_name
        self.started_at = time.monotonic()

    def stop(self) -> None:
        self.mode = StreamMode.IDLE

    def is_publishing(self) -> bool:
        return self.mode is StreamMode.PUBLISHING

    def is_playing(self) -> bool:
        return self.mode is StreamMode.PLAYING

    def is_ready(self) -> bool:
        """True once a video or audio sequence header has arrived."""
        return self.has_video_header or self.has_audio_header

    def duration(self) -> Optional[float]:
        """Seconds since the stream started, or None if it never started."""
        if self.started_at is None:
            return None
        return time.monotonic() - self.started_at

    def on_video(self, timestamp: int, is_keyframe: bool, is_header: bool, size: int) -> None:
        """Count a received video message."""
        self.last_video_ts = timestamp
        self.video_frames += 1
        self.bytes_received += size
        if is_header:
            self.has_video_header = True
        if is_keyframe:
            self.keyframes += 1

    def on_audio(self, timestamp: int, is_header: bool, size: int) -> None:
        """Count a received audio message."""
        self.last_audio_ts = timestamp
        self.audio_frames += 1
        self.bytes_received += size
        if is_header:
            self.has_audio_header = True

    def on_metadata(self) -> None:
        self.has_metadata = True

    def bitrate(self) -> Optional[int]:
        """Bits per second over whole elapsed seconds; None before the first second."""
        elapsed = self.duration()
        if elapsed is None:
            return None
        secs = int(elapsed)
        if secs > 0:
            return (self.bytes_received * 8) // secs
        return None