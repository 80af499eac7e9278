"""
Dirty Tracker Package

Opportunistic tracking of changed files under a directory. Answers "has
anything changed since I last checked?" without rescanning the tree.

Features:
- Clean / Dirty / Unknown state with absolute and relative dirty paths
- Create-then-delete cancellation within a tracking window
- Marker-file barrier so queries see every change made before the call
- Gives up (Unknown) instead of guessing when events may have been lost

Example:
    with DirtyTracker(path) as tracker:
        build(path)
        tracker.mark_clean()
        ...
        if tracker.state() != State.CLEAN:
            build(path)
"""

from .models import (
    EventKind,
    State,
    ConnectionStatus,
    ChangeEvent,
    derive_state,
)

from .config import TrackerConfig

from .exceptions import (
    TrackerError,
    ResourceError,
    TrackerClosedError,
    ProcessError,
    DrainTimeoutError,
    DisconnectedError,
)

from .channel import EventChannel
from .reconciler import Reconciler
from .event_source import EventSource, WatchdogEventSource, ChannelEventHandler, translate_event
from .barrier import SyncBarrier
from .tracker import DirtyTracker


__all__ = [
    # Models
    "EventKind",
    "State",
    "ConnectionStatus",
    "ChangeEvent",
    "derive_state",
    # Config
    "TrackerConfig",
    # Exceptions
    "TrackerError",
    "ResourceError",
    "TrackerClosedError",
    "ProcessError",
    "DrainTimeoutError",
    "DisconnectedError",
    # Components
    "EventChannel",
    "Reconciler",
    "EventSource",
    "WatchdogEventSource",
    "ChannelEventHandler",
    "translate_event",
    "SyncBarrier",
    # Facade
    "DirtyTracker",
]

__version__ = "0.1.0"
