"""Configuration for the stream registry."""

from __future__ import annotations

from dataclasses import dataclass, replace

__all__ = ["RegistryConfig"]


@dataclass(frozen=True)
class RegistryConfig:
    """Settings for the stream registry.

    Durations are expressed in seconds.
    """

    #: Capacity of the per-stream broadcast channel (~4 seconds at 30 fps).
    broadcast_capacity: int = 128
    #: How long a stream survives after its publisher disconnects.
    publisher_grace_period: float = 10.0
    #: Timeout for streams with no publisher and no subscribers.
    idle_stream_timeout: float = 30.0
    #: Maximum GOP buffer size in bytes per stream.
    max_gop_size: int = 4 * 1024 * 1024
    #: Interval between cleanup runs.
    cleanup_interval: float = 5.0
    #: Lag events tolerated before a slow subscriber is dropped.
    max_consecutive_lag_events: int = 10
    #: Lag (in frames) below which playback continues normally (~1 s at 30 fps).
    lag_threshold_low: int = 30

    def with_broadcast_capacity(self, capacity: int) -> RegistryConfig:
        """Return a copy with a different broadcast channel capacity."""
        return replace(self, broadcast_capacity=capacity)

    def with_publisher_grace_period(self, seconds: float) -> RegistryConfig:
        """Return a copy with a different publisher grace period."""
        return replace(self, publisher_grace_period=seconds)

    def with_idle_stream_timeout(self, seconds: float) -> RegistryConfig:
        """Return a copy with a different idle stream timeout."""
        return replace(self, idle_stream_timeout=seconds)

    def with_max_gop_size(self, size: int) -> RegistryConfig:
        """Return a copy with a different maximum GOP buffer size."""
        return replace(self, max_gop_size=size)