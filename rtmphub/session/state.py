"""Lifecycle state of one RTMP session."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .stream import StreamState

__all__ = ["SessionPhase", "SessionState"]

_U32 = 0xFFFFFFFF


class SessionPhase(Enum):
    """Where a session is in its lifecycle."""

    CONNECTED = "connected"
    HANDSHAKING = "handshaking"
    WAITING_CONNECT = "waiting_connect"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class SessionState:
    """Phase, negotiated sizes, byte counters and message streams of a session.

    ``connect_params`` is the parsed connect command object (anything with an
    ``app`` attribute); ``encoder_type`` is None until known.
    """

    def __init__(self, id: int, peer_addr: Tuple[str, int]) -> None:
        self.id = id
        self.peer_addr = peer_addr
        self.phase = SessionPhase.CONNECTED
        self.connected_at = time.monotonic()
        self.handshake_completed_at: Optional[float] = None
        self.connect_params: Any = None
        self.encoder_type: Any = None
        self.streams: Dict[int, StreamState] = {}
        # Stream 0 is reserved for the NetConnection.
        self._next_stream_id = 1
        self.in_chunk_size = 128
        self.out_chunk_size = 128
        self.window_ack_size = 2_500_000
        self.bytes_received = 0
        self.bytes_sent = 0
        self.last_ack_sequence = 0

    def start_handshake(self) -> None:
        if self.phase is SessionPhase.CONNECTED:
            self.phase = SessionPhase.HANDSHAKING

    def complete_handshake(self) -> None:
        if self.phase is SessionPhase.HANDSHAKING:
            self.phase = SessionPhase.WAITING_CONNECT
            self.handshake_completed_at = time.monotonic()

    def on_connect(self, params: Any, encoder_type: Any) -> None:
        """Record an accepted connect command."""
        self.connect_params = params
        self.encoder_type = encoder_type
        self.phase = SessionPhase.ACTIVE

    def allocate_stream_id(self) -> int:
        """Create a new message stream and return its ID."""
        stream_id = self._next_stream_id
        self._next_stream_id += 1
        self.streams[stream_id] = StreamState(stream_id)
        return stream_id

    def get_stream(self, stream_id: int) -> Optional[StreamState]:
        return self.streams.get(stream_id)

    def remove_stream(self, stream_id: int) -> Optional[StreamState]:
        return self.streams.pop(stream_id, None)

    def add_bytes_received(self, count: int) -> bool:
        """Count received bytes; True when an acknowledgement is due."""
        self.bytes_received += count
        delta = ((self.bytes_received & _U32) - self.last_ack_sequence) & _U32
        return delta >= self.window_ack_size

    def mark_ack_sent(self) -> None:
        self.last_ack_sequence = self.bytes_received & _U32

    def duration(self) -> float:
        """Seconds since the connection was opened."""
        return time.monotonic() - self.connected_at

    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE

    def close(self) -> None:
        self.phase = SessionPhase.CLOSING

    def app(self) -> Optional[str]:
        """Application name from the connect command, if connected."""
        if self.connect_params is None:
            return None
        return self.connect_params.app