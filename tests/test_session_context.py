import dataclasses
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Optional

from rtmphub.session.context import SessionContext, StreamContext

ADDR = ("192.168.1.100", 54321)


@dataclass
class Params:
    app: str = ""
    tc_url: Optional[str] = None
    page_url: Optional[str] = None
    flash_ver: Optional[str] = None


def test_session_context_new():
    ctx = SessionContext(42, ADDR)

    assert ctx.session_id == 42
    assert ctx.peer_addr == ADDR
    assert ctx.app == ""
    assert ctx.encoder_type is None
    assert ctx.connect_params is None
    assert ctx.stats.bytes_received == 0


def test_session_context_with_connect():
    ctx = SessionContext(1, ADDR)
    params = Params(
        app="live",
        tc_url="rtmp://localhost/live",
        flash_ver="FMLE/3.0",
        page_url="http://example.com",
    )

    ctx.with_connect(params, "obs")

    assert ctx.app == "live"
    assert ctx.encoder_type == "obs"
    assert ctx.connect_params is params


def test_session_context_tc_url():
    ctx = SessionContext(1, ADDR)
    assert ctx.tc_url() is None

    ctx.with_connect(Params(tc_url="rtmp://server/app"), None)
    assert ctx.tc_url() == "rtmp://server/app"


def test_session_context_page_url():
    ctx = SessionContext(1, ADDR)
    assert ctx.page_url() is None

    ctx.with_connect(Params(page_url="http://example.com/page"), None)
    assert ctx.page_url() == "http://example.com/page"


def test_session_context_flash_ver():
    ctx = SessionContext(1, ADDR)
    assert ctx.flash_ver() is None

    ctx.with_connect(Params(flash_ver="OBS-Studio/29.1.3"), "obs")
    assert ctx.flash_ver() == "OBS-Studio/29.1.3"


def test_session_context_no_optional_params():
    ctx = SessionContext(1, ADDR)
    ctx.with_connect(Params(), "ffmpeg")

    assert ctx.tc_url() is None
    assert ctx.page_url() is None
    assert ctx.flash_ver() is None


def test_stream_context_new():
    session_ctx = SessionContext(1, ADDR)
    stream_ctx = StreamContext(session_ctx, 5, "my_stream_key", True)

    assert stream_ctx.stream_id == 5
    assert stream_ctx.stream_key == "my_stream_key"
    assert stream_ctx.is_publishing
    assert stream_ctx.session.session_id == 1


def test_stream_context_playing():
    stream_ctx = StreamContext(SessionContext(2, ADDR), 10, "viewer_stream", False)

    assert stream_ctx.stream_id == 10
    assert stream_ctx.stream_key == "viewer_stream"
    assert not stream_ctx.is_publishing


def test_session_context_clone():
    ctx = SessionContext(1, ADDR)
    ctx.with_connect(Params(app="test"), "wirecast")

    cloned = dataclasses.replace(ctx)

    assert cloned.session_id == ctx.session_id
    assert cloned.app == "test"
    assert cloned.encoder_type == "wirecast"


def test_enhanced_capabilities_enabled():
    ctx = SessionContext(1, ADDR)
    assert not ctx.is_enhanced_rtmp()
    ctx.with_enhanced_capabilities(SimpleNamespace(enabled=True))
    assert ctx.is_enhanced_rtmp()


def test_enhanced_capabilities_disabled_ignored():
    ctx = SessionContext(1, ADDR)
    ctx.with_enhanced_capabilities(SimpleNamespace(enabled=False))
    assert ctx.enhanced_capabilities is None
    assert not ctx.is_enhanced_rtmp()