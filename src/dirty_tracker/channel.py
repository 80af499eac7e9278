"""Bounded in-memory channel between the observer thread and the querying thread."""

import logging
import queue
import threading
import time
from typing import Callable, Optional

from .exceptions import DisconnectedError, DrainTimeoutError
from .models import ChangeEvent


logger = logging.getLogger(__name__)

_CLOSED = object()


class EventChannel:
    """
    Thread-safe FIFO of change events with overflow and disconnect signalling.

    The producer side never blocks: when the channel is full the event is
    dropped and the next receive yields an overflow event, so the consumer
    learns that its view is incomplete. Closing the channel is terminal;
    events already queued are still delivered before the disconnect.
    """

    def __init__(
        self,
        maxsize: int = 0,
        is_alive: Optional[Callable[[], bool]] = None,
        liveness_interval: float = 0.5,
    ):
        """
        Initialize the channel.

        Args:
            maxsize: Maximum number of queued events, 0 for unbounded
            is_alive: Callback reporting whether the producer is still running
            liveness_interval: Seconds between producer liveness checks
        """
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize)
        self._is_alive = is_alive
        self._liveness_interval = liveness_interval
        self._overflowed = threading.Event()
        self._closed = threading.Event()
        self._dropped = 0
        self._lock = threading.Lock()

    def send(self, event: ChangeEvent) -> bool:
        """
        Enqueue an event without blocking.

        Args:
            event: The event to enqueue

        Returns:
            True if the event was queued, False if it was dropped
        """
        if self._closed.is_set():
            return False
        try:
            self._queue.put_nowait(event)
            return True
        except queue.Full:
            with self._lock:
                self._dropped += 1
                first = not self._overflowed.is_set()
                self._overflowed.set()
            if first:
                logger.warning(f"Event channel full ({self._queue.maxsize} events), dropping events")
            return False

    def close(self) -> None:
        """Signal terminal disconnection to the consumer."""
        if self._closed.is_set():
            return
        self._closed.set()
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            # The consumer sees the closed flag once the queue runs dry.
            pass

    def receive(self, timeout: Optional[float] = None) -> ChangeEvent:
        """
        Wait for the next event.

        Args:
            timeout: Maximum seconds to wait, None to wait indefinitely

        Returns:
            The next event, or an overflow event if events were dropped

        Raises:
            DrainTimeoutError: If no event arrived within the timeout
            DisconnectedError: If the channel is closed and drained
        """
        if self._overflowed.is_set():
            self._overflowed.clear()
            return ChangeEvent.overflow()

        if self._closed.is_set() and self._queue.empty():
            raise DisconnectedError()

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            wait = self._liveness_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise DrainTimeoutError(timeout)
                wait = min(wait, remaining)
            try:
                item = self._queue.get(timeout=wait)
            except queue.Empty:
                if self._closed.is_set():
                    raise DisconnectedError()
                if self._is_alive is not None and not self._is_alive():
                    logger.error("Event source stopped without closing its channel")
                    self.close()
                    raise DisconnectedError()
                continue
            if item is _CLOSED:
                raise DisconnectedError()
            return item

    def receive_nowait(self) -> Optional[ChangeEvent]:
        """
        Return the next queued event, or None if nothing is queued.

        Raises:
            DisconnectedError: If the channel is closed and drained
        """
        if self._overflowed.is_set():
            self._overflowed.clear()
            return ChangeEvent.overflow()
        try:
            item = self._queue.get_nowait()
        except queue.Empty:
            if self._closed.is_set():
                raise DisconnectedError()
            return None
        if item is _CLOSED:
            raise DisconnectedError()
        return item

    @property
    def closed(self) -> bool:
        """Check if the producer side has been closed."""
        return self._closed.is_set()

    @property
    def dropped(self) -> int:
        """Number of events dropped because the channel was full."""
        with self._lock:
            return self._dropped

    def __len__(self) -> int:
        """Return the approximate number of queued events."""
        return self._queue.qsize()
