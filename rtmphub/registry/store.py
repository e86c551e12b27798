"""The central registry routing media from publishers to subscribers."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from .config import RegistryConfig
from .entry import BroadcastReceiver, StreamEntry, StreamState, StreamStats
from .error import StreamAlreadyPublishingError, StreamNotActiveError, StreamNotFoundError
from .frame import BroadcastFrame, StreamKey

__all__ = ["StreamRegistry"]

logger = logging.getLogger(__name__)


class StreamRegistry:
    """All live streams, keyed by :class:`StreamKey`.

    Meant to be used from a single asyncio event loop.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or RegistryConfig()
        self._clock = clock
        self._streams: Dict[StreamKey, StreamEntry] = {}

    @property
    def config(self) -> RegistryConfig:
        return self._config

    def register_publisher(self, key: StreamKey, session_id: int) -> None:
        """Make ``session_id`` the publisher of ``key``, creating the stream if needed.

        Raises :class:`StreamAlreadyPublishingError` if another publisher is active.
        """
        entry = self._streams.get(key)
        if entry is None:
            entry = StreamEntry(self._config, created_at=self._clock())
            entry.publisher_id = session_id
            entry.state = StreamState.ACTIVE
            self._streams[key] = entry
            logger.info("Publisher registered (new stream) stream=%s session_id=%d", key, session_id)
            return

        if entry.state is StreamState.ACTIVE and entry.publisher_id is not None:
            raise StreamAlreadyPublishingError(key)

        entry.publisher_id = session_id
        entry.publisher_disconnected_at = None
        entry.state = StreamState.ACTIVE
        logger.info(
            "Publisher registered (existing stream) stream=%s session_id=%d subscribers=%d",
            key,
            session_id,
            entry.subscriber_count,
        )

    def unregister_publisher(self, key: StreamKey, session_id: int) -> None:
        """Detach the publisher; the stream enters grace period if it has subscribers."""
        entry = self._streams.get(key)
        if entry is None:
            return
        if entry.publisher_id != session_id:
            logger.warning(
                "Publisher unregister mismatch stream=%s expected=%s actual=%d",
                key,
                entry.publisher_id,
                session_id,
            )
            return

        entry.publisher_id = None
        entry.publisher_disconnected_at = self._clock()
        if entry.subscriber_count > 0:
            entry.state = StreamState.GRACE_PERIOD
            logger.info(
                "Publisher disconnected, entering grace period stream=%s subscribers=%d grace=%ss",
                key,
                entry.subscriber_count,
                self._config.publisher_grace_period,
            )
        else:
            entry.state = StreamState.IDLE
            logger.info("Publisher disconnected, no subscribers stream=%s", key)

    def subscribe(
        self, key: StreamKey
    ) -> Tuple[BroadcastReceiver[BroadcastFrame], List[BroadcastFrame]]:
        """Join a stream; returns a receiver and the catch-up frames to send first."""
        entry = self._streams.get(key)
        if entry is None:
            raise StreamNotFoundError(key)
        if entry.state is StreamState.IDLE and entry.publisher_id is None:
            raise StreamNotActiveError(key)

        receiver = entry.subscribe()
        catchup = entry.get_catchup_frames()
        entry.subscriber_count += 1
        logger.info(
            "Subscriber added stream=%s subscribers=%d catchup_frames=%d",
            key,
            entry.subscriber_count,
            len(catchup),
        )
        return receiver, catchup

    def unsubscribe(self, key: StreamKey) -> None:
        entry = self._streams.get(key)
        if entry is None:
            return
        entry.subscriber_count = max(0, entry.subscriber_count - 1)
        logger.debug("Subscriber removed stream=%s subscribers=%d", key, entry.subscriber_count)

    def broadcast(self, key: StreamKey, frame: BroadcastFrame) -> None:
        """Update the stream's caches and send the frame to its subscribers."""
        entry = self._streams.get(key)
        if entry is None:
            return
        entry.update_caches(frame)
        entry.send(frame)

    def get_sequence_headers(self, key: StreamKey) -> List[BroadcastFrame]:
        """Video then audio sequence header, whichever are known."""
        entry = self._streams.get(key)
        if entry is None:
            return []
        return [h for h in (entry.video_header, entry.audio_header) if h is not None]

    def has_active_stream(self, key: StreamKey) -> bool:
        entry = self._streams.get(key)
        return (
            entry is not None
            and entry.state is StreamState.ACTIVE
            and entry.publisher_id is not None
        )

    def stream_exists(self, key: StreamKey) -> bool:
        """True if the stream is active or in its grace period."""
        entry = self._streams.get(key)
        return entry is not None and entry.state in (
            StreamState.ACTIVE,
            StreamState.GRACE_PERIOD,
        )

    def get_stream_stats(self, key: StreamKey) -> Optional[StreamStats]:
        entry = self._streams.get(key)
        if entry is None:
            return None
        return StreamStats(
            subscriber_count=entry.subscriber_count,
            has_publisher=entry.publisher_id is not None,
            state=entry.state,
            gop_frame_count=entry.gop_buffer.frame_count,
            gop_size_bytes=entry.gop_buffer.size,
        )

    def stream_count(self) -> int:
        return len(self._streams)

    def cleanup(self) -> List[StreamKey]:
        """Remove streams past their grace period or idle timeout; returns their keys."""
        now = self._clock()
        config = self._config
        expired: List[StreamKey] = []
        for key, entry in self._streams.items():
            if entry.state is StreamState.GRACE_PERIOD:
                since = entry.publisher_disconnected_at
                if since is not None and now - since > config.publisher_grace_period:
                    expired.append(key)
            elif entry.state is StreamState.IDLE:
                since = entry.publisher_disconnected_at
                if since is None:
                    since = entry.created_at
                if now - since > config.idle_stream_timeout:
                    expired.append(key)

        for key in expired:
            self._streams.pop(key)._close()
            logger.info("Stream removed by cleanup stream=%s", key)
        return expired

    def spawn_cleanup_task(self) -> "asyncio.Task[None]":
        """Start running :meth:`cleanup` every ``cleanup_interval`` seconds.

        The first run happens immediately. Cancel the returned task to stop it.
        """
        return asyncio.get_running_loop().create_task(self._cleanup_loop())

    async def _cleanup_loop(self) -> None:
        while True:
            self.cleanup()
            await asyncio.sleep(self._config.cleanup_interval)