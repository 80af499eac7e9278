"""Synchronization barrier that drains the event channel up to a marker file."""

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import FrozenSet, Optional, Set

from .channel import EventChannel
from .config import TrackerConfig
from .exceptions import DrainTimeoutError, ResourceError
from .models import ChangeEvent
from .reconciler import Reconciler


logger = logging.getLogger(__name__)


class SyncBarrier:
    """
    Makes a synchronous query observe every change made before it.

    A uniquely named marker file is created under the root and removed
    straight away. Notifications for one watch arrive in the order they
    happened, so once the marker's removal comes out of the channel every
    earlier change has been reconciled. Events queued after the marker
    are left for the next drain.
    """

    def __init__(
        self,
        root: Path,
        channel: EventChannel,
        reconciler: Reconciler,
        config: Optional[TrackerConfig] = None,
    ):
        """
        Initialize the barrier.

        Args:
            root: Directory the marker is placed in
            channel: Channel delivering change events for the root
            reconciler: Reconciler the drained events are applied to
            config: Tracker configuration
        """
        self.root = root
        self.channel = channel
        self.reconciler = reconciler
        self.config = config or TrackerConfig()
        self._markers: Set[Path] = set()

    def place_marker(self) -> Path:
        """
        Create and immediately remove a marker file under the root.

        Returns:
            Absolute path of the removed marker

        Raises:
            ResourceError: If the marker cannot be created or removed
        """
        try:
            fd, name = tempfile.mkstemp(
                prefix=self.config.marker_prefix,
                suffix=self.config.marker_suffix,
                dir=str(self.root),
            )
        except OSError as exc:
            raise ResourceError(f"Cannot create marker in {self.root}: {exc}") from exc

        marker = Path(name)
        self._markers.add(marker)

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(b"dummy")
        except OSError as exc:
            raise ResourceError(f"Cannot write marker {name}: {exc}") from exc
        finally:
            try:
                os.unlink(name)
            except OSError as exc:
                raise ResourceError(f"Cannot remove marker {name}: {exc}") from exc

        logger.debug(f"Placed marker {marker.name}")
        return marker

    def drain(self, timeout: Optional[float] = None) -> int:
        """
        Reconcile every event up to and including the marker's removal.

        Args:
            timeout: Maximum seconds to wait for the marker, None to wait indefinitely

        Returns:
            Number of events taken from the channel

        Raises:
            ResourceError: If the marker cannot be placed
            DrainTimeoutError: If the marker was not seen in time; applied
                events stay applied
            DisconnectedError: If the channel was closed
        """
        if self.channel.closed:
            # Raises DisconnectedError once the queued events are applied.
            self._drain_ready()

        marker = self.place_marker()
        deadline = None if timeout is None else time.monotonic() + timeout
        count = 0

        while True:
            # Events already queued are taken even once the deadline passed.
            event = self.channel.receive_nowait()
            if event is None:
                wait = None
                if deadline is not None:
                    wait = deadline - time.monotonic()
                    if wait <= 0:
                        logger.warning(f"Drain timed out after {timeout}s, {count} event(s) applied")
                        raise DrainTimeoutError(timeout)
                try:
                    event = self.channel.receive(wait)
                except DrainTimeoutError:
                    logger.warning(f"Drain timed out after {timeout}s, {count} event(s) applied")
                    raise DrainTimeoutError(timeout) from None
            count += 1

            if event.removes(marker):
                self._markers.discard(marker)
                break

            self._apply(event)

            if event.need_rescan:
                # The marker's own notification may be among the dropped
                # events; the state is unknown until mark_clean anyway.
                count += self._drain_ready()
                break

        logger.debug(f"Drain complete, {count} event(s) processed")
        return count

    @property
    def pending_markers(self) -> FrozenSet[Path]:
        """Markers placed by this barrier whose removal has not been seen yet."""
        return frozenset(self._markers)

    def _drain_ready(self) -> int:
        """Apply whatever is already queued without waiting."""
        count = 0
        while True:
            event = self.channel.receive_nowait()
            if event is None:
                return count
            self._apply(event)
            count += 1

    def _apply(self, event: ChangeEvent) -> None:
        if event.paths and all(p in self._markers for p in event.paths):
            # Our own marker, possibly left over from a timed-out drain.
            for path in event.paths:
                if event.removes(path):
                    self._markers.discard(path)
            if event.need_rescan:
                self.reconciler.apply(ChangeEvent.overflow())
            return
        logger.debug(f"Applying {event.kind.value} {', '.join(str(p) for p in event.paths)}")
        self.reconciler.apply(event)
