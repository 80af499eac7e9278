"""Data models for the dirty tracker package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple
import time


class EventKind(Enum):
    """Logical kinds of file system change."""
    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    RENAME = "rename"
    OTHER = "other"


class State(Enum):
    """Observable state of a tracker."""
    CLEAN = "clean"
    DIRTY = "dirty"
    UNKNOWN = "unknown"


class ConnectionStatus(Enum):
    """Whether the event source can still deliver events."""
    ALIVE = "alive"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ChangeEvent:
    """
    A file system change as seen by the reconciler.

    Attributes:
        kind: The logical kind of change
        paths: Absolute paths affected; (from, to) for RENAME
        need_rescan: Set when events may have been dropped before this one
        timestamp: Unix timestamp when the event was received
    """
    kind: EventKind
    paths: Tuple[Path, ...] = ()
    need_rescan: bool = False
    timestamp: float = field(default_factory=time.time, compare=False)

    def __post_init__(self):
        for path in self.paths:
            if not path.is_absolute():
                raise ValueError(f"path must be absolute: {path}")
        if self.kind == EventKind.RENAME and len(self.paths) != 2:
            raise ValueError(f"rename needs exactly two paths, got {len(self.paths)}")

    @classmethod
    def create(cls, path: Path) -> "ChangeEvent":
        return cls(EventKind.CREATE, (path,))

    @classmethod
    def modify(cls, path: Path) -> "ChangeEvent":
        return cls(EventKind.MODIFY, (path,))

    @classmethod
    def remove(cls, path: Path) -> "ChangeEvent":
        return cls(EventKind.REMOVE, (path,))

    @classmethod
    def rename(cls, src: Path, dest: Path) -> "ChangeEvent":
        return cls(EventKind.RENAME, (src, dest))

    @classmethod
    def overflow(cls) -> "ChangeEvent":
        """An event carrying only the "events were dropped" flag."""
        return cls(EventKind.OTHER, (), need_rescan=True)

    def removes(self, path: Path) -> bool:
        """Check whether this event makes ``path`` disappear."""
        if self.kind == EventKind.REMOVE:
            return path in self.paths
        if self.kind == EventKind.RENAME:
            return self.paths[0] == path
        return False


def derive_state(
    need_rescan: bool,
    status: ConnectionStatus,
    drain_failed: bool,
    has_paths: bool,
) -> State:
    """
    Compute the tracker state from its underlying fields.

    Args:
        need_rescan: Sticky flag set when events were lost
        status: Connection status of the event source
        drain_failed: Whether the most recent drain failed
        has_paths: Whether the dirty path set is non-empty

    Returns:
        UNKNOWN if completeness cannot be vouched for, otherwise
        DIRTY or CLEAN depending on the dirty path set
    """
    if need_rescan or drain_failed or status == ConnectionStatus.DISCONNECTED:
        return State.UNKNOWN
    if has_paths:
        return State.DIRTY
    return State.CLEAN
