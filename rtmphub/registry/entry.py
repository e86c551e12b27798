"""Per-stream state kept by the registry, and the broadcast channel it fans out on."""

from __future__ import annotations

import asyncio
import time
import weakref
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Generic, List, Optional, TypeVar

from .config import RegistryConfig
from .frame import BroadcastFrame, FrameType

__all__ = [
    "StreamState",
    "LaggedError",
    "ChannelClosedError",
    "BroadcastReceiver",
    "BroadcastChannel",
    "StreamEntry",
    "StreamStats",
]

T = TypeVar("T")


class StreamState(Enum):
    """Lifecycle state of a registry stream."""

    ACTIVE = "active"
    GRACE_PERIOD = "grace_period"
    IDLE = "idle"


class LaggedError(Exception):
    """A receiver fell behind and messages were overwritten before it read them."""

    def __init__(self, skipped: int) -> None:
        self.skipped = skipped
        super().__init__(f"receiver lagged behind by {skipped} messages")


class ChannelClosedError(Exception):
    """The channel is closed and every buffered message has been read."""

    def __init__(self) -> None:
        super().__init__("broadcast channel closed")


class BroadcastReceiver(Generic[T]):
    """Reading end of a :class:`BroadcastChannel`; each receiver sees every message."""

    def __init__(self, channel: BroadcastChannel[T], position: int) -> None:
        self._channel = channel
        self._position = position

    async def recv(self) -> T:
        """Wait for and return the next message.

        Raises :class:`LaggedError` once if messages were lost, after which reading
        resumes at the oldest retained message, and :class:`ChannelClosedError` when
        the channel is closed and drained.
        """
        channel = self._channel
        while True:
            oldest = channel._oldest_seq
            if self._position < oldest:
                skipped = oldest - self._position
                self._position = oldest
                raise LaggedError(skipped)
            if self._position < channel._next_seq:
                item = channel._buffer[self._position - oldest]
                self._position += 1
                return item
            if channel._closed:
                raise ChannelClosedError()
            waiter = asyncio.get_running_loop().create_future()
            channel._waiters.append(waiter)
            await waiter


class BroadcastChannel(Generic[T]):
    """Bounded multi-consumer channel where slow receivers lose the oldest messages."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"broadcast capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._buffer: Deque[T] = deque(maxlen=capacity)
        self._next_seq = 0
        self._receivers: "weakref.WeakSet[BroadcastReceiver[T]]" = weakref.WeakSet()
        self._waiters: List["asyncio.Future[None]"] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def receiver_count(self) -> int:
        """Number of receivers still alive."""
        return len(self._receivers)

    @property
    def _oldest_seq(self) -> int:
        return self._next_seq - len(self._buffer)

    def subscribe(self) -> BroadcastReceiver[T]:
        """Create a receiver that sees every message sent from now on."""
        receiver = BroadcastReceiver(self, self._next_seq)
        self._receivers.add(receiver)
        return receiver

    def send(self, item: T) -> int:
        """Send a message; returns how many receivers will see it (0 if none)."""
        if self._closed:
            return 0
        count = len(self._receivers)
        if count == 0:
            return 0
        self._buffer.append(item)
        self._next_seq += 1
        self._wake()
        return count

    def close(self) -> None:
        """Close the channel; receivers drain what is buffered, then see it closed."""
        self._closed = True
        self._wake()

    def _wake(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)


class _GopBuffer:
    """Video frames since the latest keyframe, bounded in bytes."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._frames: List[BroadcastFrame] = []
        self._size = 0

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def size(self) -> int:
        return self._size

    def push(self, frame: BroadcastFrame) -> None:
        length = len(frame.data)
        if frame.is_keyframe:
            self.clear()
            if length > self.max_size:
                return
        elif not self._frames:
            # Without a keyframe the frames cannot be decoded by a late joiner.
            return
        elif self._size + length > self.max_size:
            # A truncated GOP is useless; wait for the next keyframe.
            self.clear()
            return
        self._frames.append(frame)
        self._size += length

    def clear(self) -> None:
        self._frames.clear()
        self._size = 0

    def frames(self) -> List[BroadcastFrame]:
        return list(self._frames)


class StreamEntry:
    """Everything the registry keeps for one stream."""

    def __init__(
        self, config: Optional[RegistryConfig] = None, created_at: Optional[float] = None
    ) -> None:
        config = config or RegistryConfig()
        self.gop_buffer = _GopBuffer(config.max_gop_size)
        self.video_header: Optional[BroadcastFrame] = None
        self.audio_header: Optional[BroadcastFrame] = None
        self.metadata: Optional[BroadcastFrame] = None
        self.publisher_id: Optional[int] = None
        self.subscriber_count = 0
        self.publisher_disconnected_at: Optional[float] = None
        self.created_at = time.monotonic() if created_at is None else created_at
        self.state = StreamState.IDLE
        self._channel: BroadcastChannel[BroadcastFrame] = BroadcastChannel(
            config.broadcast_capacity
        )

    def has_publisher(self) -> bool:
        return self.publisher_id is not None

    def get_catchup_frames(self) -> List[BroadcastFrame]:
        """Metadata, then sequence headers, then the buffered GOP."""
        frames = [
            frame
            for frame in (self.metadata, self.video_header, self.audio_header)
            if frame is not None
        ]
        frames.extend(self.gop_buffer.frames())
        return frames

    def subscribe(self) -> BroadcastReceiver[BroadcastFrame]:
        return self._channel.subscribe()

    def send(self, frame: BroadcastFrame) -> int:
        """Fan a frame out; returns the number of receivers, 0 if there are none."""
        return self._channel.send(frame)

    def update_caches(self, frame: BroadcastFrame) -> None:
        """Remember sequence headers and metadata, and feed video to the GOP buffer."""
        if frame.frame_type is FrameType.VIDEO:
            if frame.is_header:
                self.video_header = frame
            else:
                self.gop_buffer.push(frame)
        elif frame.frame_type is FrameType.AUDIO:
            if frame.is_header:
                self.audio_header = frame
        elif frame.frame_type is FrameType.METADATA:
            self.metadata = frame

    def _close(self) -> None:
        self._channel.close()


@dataclass(frozen=True)
class StreamStats:
    """Snapshot of a registry stream."""

    subscriber_count: int
    has_publisher: bool
    state: StreamState
    gop_frame_count: int
    gop_size_bytes: int