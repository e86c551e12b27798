import asyncio

import pytest

from rtmphub.registry.config import RegistryConfig
from rtmphub.registry.entry import ChannelClosedError, StreamState
from rtmphub.registry.error import (
    StreamAlreadyPublishingError,
    StreamNotActiveError,
    StreamNotFoundError,
)
from rtmphub.registry.frame import BroadcastFrame, StreamKey
from rtmphub.registry.store import StreamRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


KEY = StreamKey("live", "test_stream")


def test_register_publisher():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    assert registry.has_active_stream(KEY)
    with pytest.raises(StreamAlreadyPublishingError) as info:
        registry.register_publisher(KEY, 2)
    assert info.value.key == KEY


@pytest.mark.asyncio
async def test_subscribe_unsubscribe():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)

    rx, catchup = registry.subscribe(KEY)
    assert catchup == []

    frame = BroadcastFrame.video(0, b"\x17\x01", True, False)
    registry.broadcast(KEY, frame)

    received = await rx.recv()
    assert received.timestamp == 0
    assert received.is_keyframe

    registry.unsubscribe(KEY)
    assert registry.get_stream_stats(KEY).subscriber_count == 0


def test_grace_period():
    registry = StreamRegistry(RegistryConfig().with_publisher_grace_period(0.1))
    registry.register_publisher(KEY, 1)
    _rx, _ = registry.subscribe(KEY)

    registry.unregister_publisher(KEY, 1)

    assert registry.get_stream_stats(KEY).state is StreamState.GRACE_PERIOD
    assert registry.stream_exists(KEY)
    _rx2, catchup = registry.subscribe(KEY)
    assert catchup == []
    assert registry.get_stream_stats(KEY).subscriber_count == 2


def test_publisher_reconnect():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    _rx, _ = registry.subscribe(KEY)
    registry.unregister_publisher(KEY, 1)
    registry.register_publisher(KEY, 2)

    stats = registry.get_stream_stats(KEY)
    assert stats.has_publisher
    assert stats.state is StreamState.ACTIVE
    assert stats.subscriber_count == 1


def test_catchup_frames():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    registry.broadcast(KEY, BroadcastFrame.video(0, b"\x17\x00", True, True))
    registry.broadcast(KEY, BroadcastFrame.audio(0, b"\xaf\x00", True))
    registry.broadcast(KEY, BroadcastFrame.video(33, b"\x17\x01", True, False))

    _rx, catchup = registry.subscribe(KEY)

    assert len(catchup) == 3
    assert catchup[0].is_header
    assert catchup[1].is_header
    assert catchup[2].is_keyframe


def test_subscribe_missing_stream():
    registry = StreamRegistry()
    with pytest.raises(StreamNotFoundError):
        registry.subscribe(KEY)


def test_subscribe_idle_stream_is_not_active():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    registry.unregister_publisher(KEY, 1)
    assert registry.get_stream_stats(KEY).state is StreamState.IDLE
    assert not registry.stream_exists(KEY)
    with pytest.raises(StreamNotActiveError):
        registry.subscribe(KEY)


def test_unregister_with_wrong_session_is_ignored():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    registry.unregister_publisher(KEY, 99)
    assert registry.has_active_stream(KEY)


def test_sequence_headers_video_then_audio():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    audio = BroadcastFrame.audio(0, b"\xaf\x00", True)
    video = BroadcastFrame.video(0, b"\x17\x00", True, True)
    registry.broadcast(KEY, audio)
    registry.broadcast(KEY, video)
    assert registry.get_sequence_headers(KEY) == [video, audio]
    assert registry.get_sequence_headers(StreamKey("live", "other")) == []


def test_missing_stream_queries():
    registry = StreamRegistry()
    assert registry.get_stream_stats(KEY) is None
    assert not registry.has_active_stream(KEY)
    assert not registry.stream_exists(KEY)
    assert registry.stream_count() == 0


def test_unsubscribe_never_goes_negative():
    registry = StreamRegistry()
    registry.register_publisher(KEY, 1)
    registry.unsubscribe(KEY)
    assert registry.get_stream_stats(KEY).subscriber_count == 0


def test_cleanup_removes_expired_grace_period():
    clock = FakeClock()
    registry = StreamRegistry(RegistryConfig().with_publisher_grace_period(10), clock=clock)
    registry.register_publisher(KEY, 1)
    _rx, _ = registry.subscribe(KEY)
    registry.unregister_publisher(KEY, 1)

    clock.now = 5
    assert registry.cleanup() == []
    assert registry.stream_count() == 1

    clock.now = 10.5
    assert registry.cleanup() == [KEY]
    assert registry.stream_count() == 0


def test_cleanup_removes_idle_and_keeps_active():
    clock = FakeClock()
    registry = StreamRegistry(RegistryConfig().with_idle_stream_timeout(30), clock=clock)
    active = StreamKey("live", "active")
    registry.register_publisher(active, 1)
    registry.register_publisher(KEY, 2)
    registry.unregister_publisher(KEY, 2)

    clock.now = 31
    assert registry.cleanup() == [KEY]
    assert registry.has_active_stream(active)


@pytest.mark.asyncio
async def test_cleanup_closes_subscriber_channels():
    clock = FakeClock()
    registry = StreamRegistry(RegistryConfig().with_publisher_grace_period(1), clock=clock)
    registry.register_publisher(KEY, 1)
    rx, _ = registry.subscribe(KEY)
    registry.unregister_publisher(KEY, 1)
    clock.now = 2
    registry.cleanup()
    with pytest.raises(ChannelClosedError):
        await rx.recv()


@pytest.mark.asyncio
async def test_spawned_cleanup_task_removes_streams():
    clock = FakeClock()
    registry = StreamRegistry(RegistryConfig(cleanup_interval=0.01), clock=clock)
    registry.register_publisher(KEY, 1)
    registry.unregister_publisher(KEY, 1)
    clock.now = 100
    task = registry.spawn_cleanup_task()
    try:
        await asyncio.sleep(0.05)
        assert registry.stream_count() == 0
    finally:
        task.cancel()