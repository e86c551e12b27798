"""Session and stream information handed to handler callbacks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from ..stats.metrics import SessionStats

__all__ = ["SessionContext", "StreamContext"]


@dataclass
class SessionContext:
    """What a handler knows about a session.

    ``connect_params`` is the parsed connect command object; ``encoder_type`` is
    None until detected; ``enhanced_capabilities`` is set only while E-RTMP is on.
    """

    session_id: int
    peer_addr: Tuple[str, int]
    app: str = ""
    encoder_type: Any = None
    connect_params: Any = None
    enhanced_capabilities: Any = None
    stats: SessionStats = field(default_factory=SessionStats)

    def with_connect(self, params: Any, encoder_type: Any) -> None:
        """Record the connect parameters and detected encoder."""
        self.app = params.app
        self.encoder_type = encoder_type
        self.connect_params = params

    def with_enhanced_capabilities(self, caps: Any) -> None:
        """Store negotiated E-RTMP capabilities if they are enabled."""
        if caps.enabled:
            self.enhanced_capabilities = caps

    def is_enhanced_rtmp(self) -> bool:
        caps = self.enhanced_capabilities
        return caps is not None and bool(caps.enabled)

    def _param(self, name: str) -> Optional[str]:
        if self.connect_params is None:
            return None
        return getattr(self.connect_params, name, None)

    def tc_url(self) -> Optional[str]:
        return self._param("tc_url")

    def page_url(self) -> Optional[str]:
        return self._param("page_url")

    def flash_ver(self) -> Optional[str]:
        return self._param("flash_ver")


@dataclass
class StreamContext:
    """What a handler knows about one stream of a session."""

    session: SessionContext
    stream_id: int
    stream_key: str
    is_publishing: bool