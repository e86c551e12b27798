import dataclasses

import pytest

from rtmphub.registry.frame import BroadcastFrame, FrameType, StreamKey


def test_stream_key_display():
    assert str(StreamKey("live", "test_stream")) == "live/test_stream"


def test_stream_key_equality_and_hash():
    first = StreamKey("live", "abc")
    second = StreamKey("live", "abc")
    other = StreamKey("live", "xyz")
    assert first == second
    assert len({first, second, other}) == 2


def test_video_frame():
    frame = BroadcastFrame.video(33, b"\x17\x01", True, False)
    assert frame.frame_type is FrameType.VIDEO
    assert frame.timestamp == 33
    assert frame.data == b"\x17\x01"
    assert frame.is_keyframe is True
    assert frame.is_header is False


def test_video_header_frame():
    frame = BroadcastFrame.video(0, b"\x17\x00", True, True)
    assert frame.is_header is True
    assert frame.is_keyframe is True


def test_audio_frame_is_never_keyframe():
    frame = BroadcastFrame.audio(0, b"\xaf\x00", True)
    assert frame.frame_type is FrameType.AUDIO
    assert frame.is_keyframe is False
    assert frame.is_header is True
    assert frame.data == b"\xaf\x00"


def test_metadata_frame():
    frame = BroadcastFrame.metadata(b"\x02meta")
    assert frame.frame_type is FrameType.METADATA
    assert frame.timestamp == 0
    assert frame.is_keyframe is False
    assert frame.is_header is False
    assert frame.data == b"\x02meta"


def test_bytearray_data_is_frozen_to_bytes():
    buf = bytearray(b"\x17\x01")
    frame = BroadcastFrame.video(0, buf, False, False)
    buf[0] = 0
    assert frame.data == b"\x17\x01"


def test_timestamp_out_of_range():
    with pytest.raises(ValueError):
        BroadcastFrame.audio(-1, b"\xaf\x01", False)
    with pytest.raises(ValueError):
        BroadcastFrame.video(2**32, b"\x17\x01", True, False)


def test_frame_is_immutable():
    frame = BroadcastFrame.metadata(b"")
    with pytest.raises(dataclasses.FrozenInstanceError):
        frame.timestamp = 5  # type: ignore[misc]
    assert frame.timestamp == 0