"""Public facade: tracks whether anything under a directory has changed."""

import logging
import os
import warnings
import weakref
from pathlib import Path
from typing import FrozenSet, Optional, Union

from .barrier import SyncBarrier
from .config import TrackerConfig
from .event_source import EventSource, WatchdogEventSource
from .exceptions import DisconnectedError, ProcessError, TrackerClosedError, TrackerError
from .models import ConnectionStatus, State, derive_state
from .reconciler import Reconciler


logger = logging.getLogger(__name__)


class DirtyTracker:
    """
    Keeps track of the files changed under a directory.

    The tracker watches the root for file system events and folds them
    into a set of dirty paths. Every query first drains all events caused
    by activity that happened before the call, so answers are consistent
    without polling or sleeping.

    The tracker can be in one of three states:
    - CLEAN: nothing changed since construction or the last mark_clean()
    - DIRTY: some paths changed
    - UNKNOWN: events may have been missed, or the event source is gone

    Instances are not thread-safe; serialize calls externally.
    """

    def __init__(
        self,
        root: Union[str, Path],
        config: Optional[TrackerConfig] = None,
        source: Optional[EventSource] = None,
    ):
        """
        Create a tracker and start watching.

        Args:
            root: Directory to watch
            config: Tracker configuration
            source: Event source to use instead of a watchdog observer

        Raises:
            ResourceError: If the watch cannot be established
        """
        self.config = config or TrackerConfig()
        self._root = Path(os.path.abspath(root))
        self._source = source or WatchdogEventSource(self._root, self.config)
        self._reconciler = Reconciler()
        self._barrier = SyncBarrier(
            self._root,
            self._source.channel,
            self._reconciler,
            self.config,
        )
        self._status = ConnectionStatus.ALIVE
        self._drain_failed = False
        self._closed = False

        self._source.start()
        # Stops the observer if the tracker is discarded without close().
        self._finalizer = weakref.finalize(self, self._source.stop)

    @property
    def root(self) -> Path:
        """The watched directory."""
        return self._root

    @property
    def closed(self) -> bool:
        return self._closed

    def process_pending(self, timeout: Optional[float] = None) -> None:
        """
        Reconcile every event caused by activity before this call.

        Args:
            timeout: Maximum seconds to wait, defaults to the configured timeout

        Raises:
            ResourceError: If the marker file cannot be placed
            DrainTimeoutError: If the drain did not finish in time
            DisconnectedError: If the event source is gone
            TrackerClosedError: If the tracker was closed
        """
        if self._closed:
            raise TrackerClosedError(f"Tracker for {self._root} is closed")
        if self._status == ConnectionStatus.DISCONNECTED:
            raise DisconnectedError()

        if timeout is None:
            timeout = self.config.get_default_timeout()

        try:
            self._barrier.drain(timeout)
        except DisconnectedError:
            logger.error(f"Event source for {self._root} disconnected, state is unknown from now on")
            self._status = ConnectionStatus.DISCONNECTED
            self._drain_failed = True
            raise
        except ProcessError:
            self._drain_failed = True
            raise
        self._drain_failed = False

    def _refresh(self, timeout: Optional[float]) -> State:
        try:
            self.process_pending(timeout)
        except ProcessError:
            return State.UNKNOWN
        return self._current_state()

    def _current_state(self) -> State:
        return derive_state(
            self._reconciler.need_rescan,
            self._status,
            self._drain_failed,
            len(self._reconciler) > 0,
        )

    def state(self, timeout: Optional[float] = None) -> State:
        """
        Return the state of the tracker.

        Args:
            timeout: Maximum seconds to wait for pending events

        Returns:
            UNKNOWN if the drain failed or events were lost, else DIRTY or CLEAN
        """
        return self._refresh(timeout)

    def paths(self, timeout: Optional[float] = None) -> Optional[FrozenSet[Path]]:
        """
        Return the absolute paths that changed.

        If the tracker is in an unknown state, this returns None.
        """
        if self._refresh(timeout) == State.UNKNOWN:
            return None
        return self._reconciler.paths

    def relative_paths(self, timeout: Optional[float] = None) -> Optional[FrozenSet[Path]]:
        """
        Return the changed paths relative to the root.

        If the tracker is in an unknown state, this returns None.
        """
        paths = self.paths(timeout)
        if paths is None:
            return None
        return frozenset(p.relative_to(self._root) for p in paths)

    def is_dirty(self) -> bool:
        """Returns True if there are dirty files."""
        warnings.warn(
            "is_dirty() is deprecated, use state() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.state() == State.DIRTY

    def mark_clean(self) -> None:
        """
        Forget all changes seen so far.

        This races with file modifications still in flight, so it is only
        safe when nothing is writing under the root.
        """
        try:
            self.process_pending()
        except TrackerClosedError:
            raise
        except TrackerError as e:
            logger.warning(f"Ignoring failed drain while marking {self._root} clean: {e}")
        self._reconciler.clear()
        if self._status == ConnectionStatus.ALIVE:
            self._drain_failed = False

    def close(self) -> None:
        """Stop watching and release the observer."""
        if self._closed:
            return
        self._closed = True
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"DirtyTracker({str(self._root)!r})"
