"""Tests for event channel module."""

import pytest
import threading
import time
from pathlib import Path

from dirty_tracker.channel import EventChannel
from dirty_tracker.exceptions import DisconnectedError, DrainTimeoutError
from dirty_tracker.models import ChangeEvent, EventKind


class TestEventChannel:
    """Tests for EventChannel class."""

    def test_fifo_order(self):
        channel = EventChannel()
        events = [ChangeEvent.create(Path(f"/root/file{i}")) for i in range(5)]
        for event in events:
            assert channel.send(event) is True

        assert len(channel) == 5
        assert [channel.receive() for _ in range(5)] == events

    def test_receive_timeout(self):
        channel = EventChannel()
        start = time.monotonic()

        with pytest.raises(DrainTimeoutError) as exc_info:
            channel.receive(timeout=0.1)

        assert exc_info.value.timeout == 0.1
        assert time.monotonic() - start >= 0.1

    def test_receive_from_other_thread(self):
        channel = EventChannel()
        event = ChangeEvent.modify(Path("/root/file"))
        timer = threading.Timer(0.05, channel.send, args=(event,))
        timer.start()

        assert channel.receive(timeout=5.0) == event
        timer.join()

    def test_overflow_reported_once(self):
        channel = EventChannel(maxsize=2)
        assert channel.send(ChangeEvent.create(Path("/root/a"))) is True
        assert channel.send(ChangeEvent.create(Path("/root/b"))) is True
        assert channel.send(ChangeEvent.create(Path("/root/c"))) is False
        assert channel.send(ChangeEvent.create(Path("/root/d"))) is False

        assert channel.dropped == 2
        first = channel.receive()
        assert first.need_rescan is True
        assert first.kind == EventKind.OTHER
        assert channel.receive().paths == (Path("/root/a"),)
        assert channel.receive().paths == (Path("/root/b"),)
        assert channel.receive_nowait() is None

    def test_close_delivers_queued_events_first(self):
        channel = EventChannel()
        event = ChangeEvent.remove(Path("/root/file"))
        channel.send(event)
        channel.close()

        assert channel.closed is True
        assert channel.receive() == event
        with pytest.raises(DisconnectedError):
            channel.receive()

    def test_disconnect_is_sticky(self):
        channel = EventChannel()
        channel.close()

        for _ in range(3):
            with pytest.raises(DisconnectedError):
                channel.receive(timeout=0.1)

    def test_send_after_close_is_dropped(self):
        channel = EventChannel()
        channel.close()
        assert channel.send(ChangeEvent.create(Path("/root/a"))) is False

    def test_dead_producer_disconnects(self):
        channel = EventChannel(is_alive=lambda: False, liveness_interval=0.01)

        with pytest.raises(DisconnectedError):
            channel.receive()
        assert channel.closed is True

    def test_receive_nowait(self):
        channel = EventChannel()
        assert channel.receive_nowait() is None

        event = ChangeEvent.create(Path("/root/a"))
        channel.send(event)
        assert channel.receive_nowait() == event

        channel.close()
        with pytest.raises(DisconnectedError):
            channel.receive_nowait()
