"""Custom exceptions for the dirty tracker package."""

from typing import Optional


class TrackerError(Exception):
    """Base exception for all tracker errors."""
    pass


class ResourceError(TrackerError):
    """Watch registration or marker placement failed."""
    pass


class TrackerClosedError(TrackerError):
    """Tracker was used after close()."""
    pass


class ProcessError(TrackerError):
    """A drain of pending events did not complete."""
    pass


class DrainTimeoutError(ProcessError):
    """The marker event did not arrive within the timeout."""

    def __init__(self, timeout: float, message: Optional[str] = None):
        self.timeout = timeout
        super().__init__(message or f"Timeout: {timeout}s")


class DisconnectedError(ProcessError):
    """The event channel was closed by the event source."""

    def __init__(self, message: str = "Disconnected"):
        super().__init__(message)
