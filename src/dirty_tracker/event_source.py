"""File system event source using the watchdog library."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

from .channel import EventChannel
from .config import TrackerConfig
from .exceptions import ResourceError
from .models import ChangeEvent, EventKind


logger = logging.getLogger(__name__)


def translate_event(event: FileSystemEvent) -> ChangeEvent:
    """
    Map a watchdog event onto a logical change event.

    Directory modifications only signal that an entry was added or
    removed, which the entry's own event already covers, so they map
    to OTHER along with opened/closed notifications.

    Args:
        event: The watchdog event

    Returns:
        The corresponding change event
    """
    src = Path(os.fsdecode(event.src_path))

    if event.event_type == EVENT_TYPE_CREATED:
        return ChangeEvent.create(src)
    if event.event_type == EVENT_TYPE_DELETED:
        return ChangeEvent.remove(src)
    if event.event_type == EVENT_TYPE_MODIFIED:
        if event.is_directory:
            return ChangeEvent(EventKind.OTHER, (src,))
        return ChangeEvent.modify(src)
    if event.event_type == EVENT_TYPE_MOVED:
        return ChangeEvent.rename(src, Path(os.fsdecode(event.dest_path)))
    return ChangeEvent(EventKind.OTHER, (src,))


class EventSource(ABC):
    """Producer of change events for a single root."""

    def __init__(self, root: Path, channel: EventChannel):
        self.root = root
        self.channel = channel

    @abstractmethod
    def start(self) -> None:
        """
        Register the watch and begin delivering events.

        Raises:
            ResourceError: If the watch cannot be established
        """
        raise NotImplementedError("start")

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering events and close the channel."""
        raise NotImplementedError("stop")

    @abstractmethod
    def is_alive(self) -> bool:
        """Check if events can still be delivered."""
        raise NotImplementedError("is_alive")


class ChannelEventHandler(FileSystemEventHandler):
    """Handler that forwards translated watchdog events to a channel."""

    def __init__(self, channel: EventChannel, root: Path):
        super().__init__()
        self.channel = channel
        self.root = root

    def on_any_event(self, event: FileSystemEvent):
        change = translate_event(event)
        if change.kind == EventKind.OTHER:
            return

        self.channel.send(change)

        if change.kind == EventKind.REMOVE and change.paths[0] == self.root:
            logger.error(f"Watched root was removed: {self.root}")
            self.channel.close()


class WatchdogEventSource(EventSource):
    """
    Recursive watchdog observer bound to one root.

    The observer's dispatch thread only enqueues; all reconciliation
    happens on the thread that reads the channel.
    """

    def __init__(self, root: Path, config: Optional[TrackerConfig] = None):
        """
        Initialize the event source.

        Args:
            root: Absolute path of the directory to watch
            config: Tracker configuration
        """
        self.config = config or TrackerConfig()
        self._observer: Optional[BaseObserver] = None
        channel = EventChannel(
            maxsize=self.config.max_pending_events,
            is_alive=self.is_alive,
            liveness_interval=self.config.liveness_interval,
        )
        super().__init__(root, channel)

    def _make_observer(self) -> BaseObserver:
        if self.config.observer == "inotify":
            try:
                from watchdog.observers.inotify import InotifyObserver
            except Exception as exc:
                raise ResourceError(f"inotify observer is not available: {exc}") from exc
            observer = InotifyObserver()
        else:
            observer = Observer()

        # A marker created and deleted between two polls is never seen.
        if isinstance(observer, PollingObserver):
            raise ResourceError("Polling observer cannot anchor drains, no native watch API available")
        return observer

    def start(self) -> None:
        if self._observer is not None:
            return
        if not self.root.is_dir():
            raise ResourceError(f"Root folder does not exist: {self.root}")

        observer = self._make_observer()
        handler = ChannelEventHandler(self.channel, self.root)
        try:
            observer.schedule(handler, str(self.root), recursive=self.config.recursive)
            observer.start()
        except OSError as exc:
            observer.stop()
            raise ResourceError(f"Failed to watch {self.root}: {exc}") from exc

        self._observer = observer
        logger.info(f"Started watching {self.root} with {type(observer).__name__}")

    def stop(self) -> None:
        observer = self._observer
        if observer is None:
            self.channel.close()
            return

        self._observer = None
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=self.config.stop_timeout)
        self.channel.close()
        logger.info(f"Stopped watching {self.root}")

    def is_alive(self) -> bool:
        observer = self._observer
        return observer is not None and observer.is_alive()
