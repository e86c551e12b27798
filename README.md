# rtmphub

Building blocks for a live RTMP publish/subscribe server on asyncio. A
publisher pushes frames into a stream. Any number of subscribers receive
them, and a subscriber that joins late first gets a list of catch-up frames.

## What it provides

- `rtmphub.registry.store.StreamRegistry` routes frames from one publisher to
  many subscribers and keeps one `StreamEntry` per `StreamKey`.
  - `register_publisher(key, session_id)` creates the stream or takes it back.
    It raises `StreamAlreadyPublishingError` if the stream already has an
    active publisher.
  - `unregister_publisher(key, session_id)` moves the stream to
    `StreamState.GRACE_PERIOD` if it has subscribers, or to `StreamState.IDLE`
    if it has none. A publisher that registers during the grace period keeps
    the existing subscribers.
  - `subscribe(key)` returns `(receiver, catchup_frames)`. It raises
    `StreamNotFoundError` if the stream does not exist, and
    `StreamNotActiveError` if the stream is idle with no publisher.
  - `unsubscribe`, `broadcast`, `get_sequence_headers`, `has_active_stream`,
    `stream_exists`, `get_stream_stats` and `stream_count` cover the rest of
    a stream's life.
  - `cleanup()` removes streams whose grace period or idle timeout has run
    out and returns their keys. `spawn_cleanup_task()` starts an
    `asyncio.Task` that calls `cleanup()` every `cleanup_interval` seconds.
  - `StreamRegistry(config=None, clock=time.monotonic)` accepts a custom clock,
    which is handy in tests.
- `rtmphub.registry.config.RegistryConfig` is a frozen dataclass. Its
  durations are in seconds. The `with_broadcast_capacity`,
  `with_publisher_grace_period`, `with_idle_stream_timeout` and
  `with_max_gop_size` methods each return a modified copy.
- `rtmphub.registry.frame` defines `StreamKey`, `FrameType` and
  `BroadcastFrame`. Frames are built with `BroadcastFrame.video`, `.audio`
  and `.metadata`.
- `rtmphub.registry.entry` holds the per-stream state:
  - `StreamEntry` caches the metadata, the video and audio sequence headers,
    and the video frames since the last keyframe (bounded by `max_gop_size`).
  - `BroadcastChannel` and `BroadcastReceiver` form a bounded multi-consumer
    channel.
- `rtmphub.registry.error` defines `RegistryError` and its subclasses.
- `rtmphub.session` holds per-connection state:
  - `SessionState` and `SessionPhase` track the connection lifecycle, stream
    ID allocation and acknowledgement accounting.
  - `StreamState` and `StreamMode` hold the mode and media counters of one
    message stream.
  - `SessionContext` and `StreamContext` are passed to handler callbacks.
- `rtmphub.server.handler` holds the application hooks:
  - `RtmpHandler` is a base class. Its async hooks accept or allow
    everything by default.
  - `AuthResult` is built with `accept()`, `reject(reason)` or
    `redirect(url)`.
  - `MediaDeliveryMode` chooses how media reaches the handler.
  - `LoggingHandler` and `ChainedHandler` are ready-made handlers.
- `rtmphub.stats.metrics` provides `SessionStats`, `StreamStats` and
  `ServerStats`.

## Installing

```
pip install .
```

## Using the registry

The registry methods are plain calls made from inside one event loop. Only
`receiver.recv()` is awaited.

```python
import asyncio

from rtmphub.registry.frame import BroadcastFrame, StreamKey
from rtmphub.registry.store import StreamRegistry


async def demo():
    registry = StreamRegistry()
    key = StreamKey("live", "stream")

    registry.register_publisher(key, 1)
    receiver, catchup = registry.subscribe(key)

    registry.broadcast(key, BroadcastFrame.video(0, b"\x17\x01", True, False))
    frame = await receiver.recv()
    print(frame.timestamp, frame.is_keyframe)

    registry.unsubscribe(key)
    registry.unregister_publisher(key, 1)


asyncio.run(demo())
```

A receiver that falls more than the channel capacity behind gets one
`LaggedError` from `recv()`. The error's `skipped` attribute gives the number
of lost frames, and reading then resumes at the oldest frame still held. When
`cleanup()` removes a stream, its channel is closed. Its receivers can still
read the frames that are buffered, and after that `recv()` raises
`ChannelClosedError`.

## Writing a handler

```python
from rtmphub.server.handler import AuthResult, RtmpHandler


class KeyCheck(RtmpHandler):
    async def on_publish(self, ctx, params):
        if params.stream_key.startswith("valid_"):
            return AuthResult.accept()
        return AuthResult.reject("Invalid stream key")
```

`ChainedHandler(first, second)` consults `second` only when `first` accepts,
in `on_connection`, `on_connect` and `on_publish`. It calls both handlers in
`on_disconnect`.

## What it does not do

This package does not include a network server. It has:

- no TCP listener and no RTMP handshake;
- no chunk stream encoding or decoding;
- no AMF serialization and no parsing of FLV, H.264, AAC or E-RTMP payloads.

Connect, publish and play parameters, media tags and parsed frames are passed
to the handlers and contexts as plain objects that the caller supplies. The
surrounding server is expected to read the sockets, call the registry and
invoke the handler hooks.

## Running the tests

```
pip install .[test]
pytest
```