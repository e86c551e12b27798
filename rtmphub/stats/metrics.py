"""Statistics for sessions, streams and the server."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

__all__ = ["SessionStats", "StreamStats", "ServerStats"]


@dataclass
class SessionStats:
    """Session-level counters. ``duration`` is in seconds."""

    bytes_received: int = 0
    bytes_sent: int = 0
    duration: float = 0.0
    video_frames: int = 0
    audio_frames: int = 0
    keyframes: int = 0
    dropped_frames: int = 0
    bitrate: int = 0

    def calculate_bitrate(self) -> None:
        """Recompute ``bitrate`` (bits per second) from bytes and whole seconds."""
        secs = int(self.duration)
        if secs > 0:
            self.bitrate = (self.bytes_received * 8) // secs


@dataclass
class StreamStats:
    """Stream-level counters and codec information."""

    stream_key: str
    started_at: float = field(default_factory=time.monotonic)
    bytes_received: int = 0
    video_frames: int = 0
    audio_frames: int = 0
    keyframes: int = 0
    last_video_ts: int = 0
    last_audio_ts: int = 0
    video_codec: str | None = None
    audio_codec: str | None = None
    width: int | None = None
    height: int | None = None
    framerate: float | None = None
    audio_sample_rate: int | None = None
    audio_channels: int | None = None

    def duration(self) -> float:
        """Seconds elapsed since the stream started."""
        return time.monotonic() - self.started_at

    def bitrate(self) -> int:
        """Bits per second over whole elapsed seconds, 0 before the first second."""
        secs = int(self.duration())
        if secs > 0:
            return (self.bytes_received * 8) // secs
        return 0

    def calculated_framerate(self) -> float:
        """Video frames per second since the stream started."""
        secs = self.duration()
        if secs > 0.0:
            return self.video_frames / secs
        return 0.0


@dataclass
class ServerStats:
    """Server-wide counters. ``uptime`` is in seconds."""

    total_connections: int = 0
    active_connections: int = 0
    total_bytes_received: int = 0
    total_bytes_sent: int = 0
    active_streams: int = 0
    uptime: float = 0.0