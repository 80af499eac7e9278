"""Reduction of change events into the dirty path set."""

import logging
from pathlib import Path
from typing import FrozenSet, Set

from .models import ChangeEvent, EventKind


logger = logging.getLogger(__name__)


class Reconciler:
    """
    Folds change events into a set of dirty paths.

    Coalescing rules:
    - CREATE marks the path dirty and remembers that it is new
    - MODIFY marks the path dirty
    - REMOVE of a path created in this window cancels it out
    - REMOVE of a pre-existing path marks it dirty
    - RENAME is REMOVE(from) followed by CREATE(to)
    - An overflow flag on any event makes the state unknowable until cleared
    """

    def __init__(self):
        self._paths: Set[Path] = set()
        self._created: Set[Path] = set()
        self._need_rescan = False

    def apply(self, event: ChangeEvent) -> None:
        """
        Apply a single event. Never raises.

        Args:
            event: The event to fold into the current state
        """
        if event.need_rescan:
            if not self._need_rescan:
                logger.warning("Events were dropped, dirty state is now unknown")
            self._need_rescan = True

        if event.kind == EventKind.CREATE:
            for path in event.paths:
                self._on_create(path)
        elif event.kind == EventKind.MODIFY:
            for path in event.paths:
                self._paths.add(path)
        elif event.kind == EventKind.REMOVE:
            for path in event.paths:
                self._on_remove(path)
        elif event.kind == EventKind.RENAME:
            src, dest = event.paths
            self._on_remove(src)
            self._on_create(dest)

    def _on_create(self, path: Path) -> None:
        self._created.add(path)
        self._paths.add(path)

    def _on_remove(self, path: Path) -> None:
        if path in self._created:
            self._created.discard(path)
            self._paths.discard(path)
        else:
            self._paths.add(path)

    def clear(self) -> None:
        """Forget all dirty paths and the rescan flag."""
        self._paths.clear()
        self._created.clear()
        self._need_rescan = False

    @property
    def paths(self) -> FrozenSet[Path]:
        return frozenset(self._paths)

    @property
    def created(self) -> FrozenSet[Path]:
        return frozenset(self._created)

    @property
    def need_rescan(self) -> bool:
        return self._need_rescan

    def __len__(self) -> int:
        """Return the number of dirty paths."""
        return len(self._paths)
