"""Handler callbacks that applications implement to drive the server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from ..session.context import SessionContext, StreamContext

__all__ = [
    "AuthResult",
    "MediaDeliveryMode",
    "RtmpHandler",
    "LoggingHandler",
    "ChainedHandler",
]

logger = logging.getLogger(__name__)


class _Outcome(Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of an authentication or authorization check."""

    outcome: _Outcome
    reason: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def accept(cls) -> AuthResult:
        """Allow the request."""
        return cls(_Outcome.ACCEPT)

    @classmethod
    def reject(cls, reason: str) -> AuthResult:
        """Refuse the request, giving a reason."""
        return cls(_Outcome.REJECT, reason=reason)

    @classmethod
    def redirect(cls, url: str) -> AuthResult:
        """Send the client to another URL."""
        return cls(_Outcome.REDIRECT, url=url)

    def is_accept(self) -> bool:
        return self.outcome is _Outcome.ACCEPT

    def is_reject(self) -> bool:
        return self.outcome is _Outcome.REJECT

    def is_redirect(self) -> bool:
        return self.outcome is _Outcome.REDIRECT


class MediaDeliveryMode(Enum):
    """How media reaches a handler."""

    #: Raw FLV tags, with minimal parsing.
    RAW_FLV = "raw_flv"
    #: Parsed frames (H.264 NALUs, AAC frames).
    PARSED_FRAMES = "parsed_frames"
    #: Both raw tags and parsed frames.
    BOTH = "both"


def _session_id(ctx: Any) -> Any:
    session = getattr(ctx, "session", ctx)
    return getattr(session, "session_id", None)


class RtmpHandler:
    """Base class for application callbacks.

    Every callback has a default that accepts or allows everything; subclasses
    override the ones they care about. Notification callbacks that are not
    overridden are routed to :meth:`_notify`, which traces them.
    """

    def _notify(self, event: str, ctx: Any, **details: Any) -> None:
        """Record an event that no override handled."""
        logger.debug(
            "Unhandled event %s session_id=%s details=%r", event, _session_id(ctx), details
        )

    async def on_connection(self, ctx: SessionContext) -> bool:
        """A TCP connection was opened; return False to close it at once."""
        return True

    async def on_handshake_complete(self, ctx: SessionContext) -> None:
        """The handshake finished, before the connect command."""
        self._notify("handshake_complete", ctx)

    async def on_connect(self, ctx: SessionContext, params: Any) -> AuthResult:
        """The client sent 'connect'; validate the application or tokens."""
        return AuthResult.accept()

    async def on_fc_publish(self, ctx: SessionContext, stream_key: str) -> AuthResult:
        """The client sent FCPublish; an early chance to check the stream key."""
        return AuthResult.accept()

    async def on_publish(self, ctx: SessionContext, params: Any) -> AuthResult:
        """The client sent 'publish'; the main check for publishers."""
        return AuthResult.accept()

    async def on_play(self, ctx: SessionContext, params: Any) -> AuthResult:
        """The client sent 'play'; reject to deny playback."""
        return AuthResult.accept()

    async def on_metadata(self, ctx: StreamContext, metadata: Mapping[str, Any]) -> None:
        """Stream metadata (onMetaData) arrived."""
        self._notify("metadata", ctx, keys=list(metadata.keys()))

    async def on_media_tag(self, ctx: StreamContext, tag: Any) -> bool:
        """A raw FLV tag arrived; return False to drop it."""
        self._notify("media_tag", ctx, timestamp=getattr(tag, "timestamp", None))
        return True

    async def on_video_frame(self, ctx: StreamContext, frame: Any, timestamp: int) -> None:
        """A parsed H.264 video frame arrived."""
        self._notify("video_frame", ctx, timestamp=timestamp)

    async def on_audio_frame(self, ctx: StreamContext, frame: Any, timestamp: int) -> None:
        """A parsed AAC audio frame arrived."""
        self._notify("audio_frame", ctx, timestamp=timestamp)

    async def on_keyframe(self, ctx: StreamContext, timestamp: int) -> None:
        """A video keyframe arrived."""
        self._notify("keyframe", ctx, timestamp=timestamp)

    async def on_unpublish(self, ctx: StreamContext) -> None:
        """A publish stream ended."""
        self._notify("unpublish", ctx, stream_key=ctx.stream_key)

    async def on_play_stop(self, ctx: StreamContext) -> None:
        """A play stream ended."""
        self._notify("play_stop", ctx, stream_key=ctx.stream_key)

    async def on_pause(self, ctx: StreamContext) -> None:
        """A subscriber paused playback."""
        self._notify("pause", ctx, stream_key=ctx.stream_key)

    async def on_unpause(self, ctx: StreamContext) -> None:
        """A subscriber resumed playback."""
        self._notify("unpause", ctx, stream_key=ctx.stream_key)

    async def on_disconnect(self, ctx: SessionContext) -> None:
        """The connection closed."""
        self._notify("disconnect", ctx)

    def media_delivery_mode(self) -> MediaDeliveryMode:
        """How media is delivered to this handler."""
        return MediaDeliveryMode.BOTH

    async def on_stats_update(self, ctx: SessionContext) -> None:
        """Periodic statistics update."""
        self._notify("stats_update", ctx)

    async def on_enhanced_video_frame(
        self, ctx: StreamContext, frame: Any, timestamp: int
    ) -> None:
        """An E-RTMP video frame arrived (HEVC, AV1, VP9, ...)."""
        self._notify("enhanced_video_frame", ctx, timestamp=timestamp)

    async def on_enhanced_audio_frame(
        self, ctx: StreamContext, frame: Any, timestamp: int
    ) -> None:
        """An E-RTMP audio frame arrived (Opus, FLAC, AC-3, ...)."""
        self._notify("enhanced_audio_frame", ctx, timestamp=timestamp)


class LoggingHandler(RtmpHandler):
    """Accepts everything and logs the main events."""

    async def on_connection(self, ctx: SessionContext) -> bool:
        logger.info("New connection session_id=%d peer=%s", ctx.session_id, ctx.peer_addr)
        return True

    async def on_connect(self, ctx: SessionContext, params: Any) -> AuthResult:
        logger.info("Connect request session_id=%d app=%s", ctx.session_id, params.app)
        return AuthResult.accept()

    async def on_publish(self, ctx: SessionContext, params: Any) -> AuthResult:
        logger.info(
            "Publish request session_id=%d stream_key=%s", ctx.session_id, params.stream_key
        )
        return AuthResult.accept()

    async def on_metadata(self, ctx: StreamContext, metadata: Mapping[str, Any]) -> None:
        logger.debug(
            "Received metadata session_id=%d stream_key=%s keys=%s",
            ctx.session.session_id,
            ctx.stream_key,
            list(metadata.keys()),
        )

    async def on_disconnect(self, ctx: SessionContext) -> None:
        logger.info("Connection closed session_id=%d", ctx.session_id)


class ChainedHandler(RtmpHandler):
    """Runs two handlers in turn; the second is consulted only if the first accepts."""

    def __init__(self, first: RtmpHandler, second: RtmpHandler) -> None:
        self.first = first
        self.second = second

    async def on_connection(self, ctx: SessionContext) -> bool:
        return await self.first.on_connection(ctx) and await self.second.on_connection(ctx)

    async def on_connect(self, ctx: SessionContext, params: Any) -> AuthResult:
        result = await self.first.on_connect(ctx, params)
        if result.is_accept():
            return await self.second.on_connect(ctx, params)
        return result

    async def on_publish(self, ctx: SessionContext, params: Any) -> AuthResult:
        result = await self.first.on_publish(ctx, params)
        if result.is_accept():
            return await self.second.on_publish(ctx, params)
        return result

    async def on_disconnect(self, ctx: SessionContext) -> None:
        await self.first.on_disconnect(ctx)
        await self.second.on_disconnect(ctx)