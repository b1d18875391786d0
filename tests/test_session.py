"""Tests for the protocol session (submit entry point)."""

import pytest

from bitscope_mcp.errors import IncompleteWriteError, ReadError
from bitscope_mcp.protocol.collector import CRCountTerminated, SizeBoundedWait
from bitscope_mcp.protocol.session import ProtocolSession


def test_submit_defaults_to_fixed_delay(fake_transport, sleeps):
    t = fake_transport([b"!"])
    session = ProtocolSession(t, sleep=sleeps.append)
    assert session.submit(b"!") == b"!"
    assert sleeps == [0.002]
    assert t.written == [b"!"]


def test_submit_with_policy(fake_transport, sleeps):
    t = fake_transport([b"D\r\r"])
    session = ProtocolSession(t, sleep=sleeps.append)
    assert session.submit(b"D", CRCountTerminated(2)) == b"D\r\r"
    assert sleeps == []


def test_incomplete_write_marks_session_unreliable(fake_transport):
    t = fake_transport(write_result=1)
    session = ProtocolSession(t, sleep=lambda s: None)
    with pytest.raises(IncompleteWriteError) as excinfo:
        session.submit(b"fa@10s")
    assert t.read_sizes == []
    assert session.unreliable
    assert session.last_error is excinfo.value

    session.mark_reset()
    assert not session.unreliable
    assert session.last_error is None


def test_error_carries_partial(fake_transport):
    t = fake_transport([b"D\r", ReadError("unplugged")])
    session = ProtocolSession(t, sleep=lambda s: None)
    with pytest.raises(ReadError) as excinfo:
        session.submit(b"D", CRCountTerminated(5))
    assert excinfo.value.partial == b"D\r"


def test_session_usable_after_error(fake_transport):
    t = fake_transport([ReadError("glitch")])
    session = ProtocolSession(t, sleep=lambda s: None)
    with pytest.raises(ReadError):
        session.submit(b"A", SizeBoundedWait(1, 10))
    t.pending = [b"ok"]
    assert session.submit(b"?") == b"ok"


def test_unknown_policy_sends_nothing(fake_transport):
    t = fake_transport([b"ok"])
    session = ProtocolSession(t, sleep=lambda s: None)
    with pytest.raises(TypeError):
        session.submit(b"fa@10s", object())
    assert t.written == []
    assert not session.unreliable
    assert session.submit(b"?") == b"ok"


def test_nested_submit_rejected(fake_transport):
    class ReentrantTransport(fake_transport):
        session = None

        def read(self, max_bytes):
            return self.session.submit(b"?")

    t = ReentrantTransport()
    session = ProtocolSession(t, sleep=lambda s: None)
    t.session = session
    with pytest.raises(RuntimeError, match="in flight"):
        session.submit(b"!")


def test_trace_sink_passed_through(fake_transport):
    seen = []
    t = fake_transport([b"x"])
    session = ProtocolSession(t, trace=lambda d, data: seen.append(d), sleep=lambda s: None)
    session.submit(b"?")
    assert seen == ["tx", "rx"]
