"""Shared fixtures for dirty tracker tests."""

from pathlib import Path

import pytest

from dirty_tracker.channel import EventChannel
from dirty_tracker.event_source import EventSource
from dirty_tracker.models import ChangeEvent
from dirty_tracker.tracker import DirtyTracker


class ScriptedEventSource(EventSource):
    """Event source fed by the test instead of the file system."""

    def __init__(self, root: Path, maxsize: int = 0):
        super().__init__(root, EventChannel(maxsize=maxsize, liveness_interval=0.05))
        self.started = False
        self.stopped = False
        self.echo_markers = True

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True
        self.channel.close()

    def is_alive(self):
        return self.started and not self.stopped

    def emit(self, event: ChangeEvent):
        return self.channel.send(event)


@pytest.fixture
def scripted_factory(tmp_path, monkeypatch):
    """Build trackers on tmp_path whose events come from a ScriptedEventSource.

    Each marker the barrier places is echoed back as create + remove
    unless ``source.echo_markers`` is False.
    """
    trackers = []

    def factory(maxsize=0):
        source = ScriptedEventSource(tmp_path, maxsize=maxsize)
        tracker = DirtyTracker(tmp_path, source=source)
        place_marker = tracker._barrier.place_marker

        def echoing_place_marker():
            marker = place_marker()
            if source.echo_markers:
                source.emit(ChangeEvent.create(marker))
                source.emit(ChangeEvent.remove(marker))
            return marker

        monkeypatch.setattr(tracker._barrier, "place_marker", echoing_place_marker)
        trackers.append(tracker)
        return tracker, source

    yield factory
    for tracker in trackers:
        tracker.close()


@pytest.fixture
def scripted(scripted_factory):
    return scripted_factory()


@pytest.fixture
def tracker_factory():
    """Create real watchdog-backed trackers and close them afterwards."""
    trackers = []

    def factory(root, **kwargs):
        tracker = DirtyTracker(root, **kwargs)
        trackers.append(tracker)
        return tracker

    yield factory
    for tracker in trackers:
        tracker.close()
