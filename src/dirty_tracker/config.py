"""Configuration for the dirty tracker package."""

import os
from dataclasses import dataclass
from typing import Optional, Union


OBSERVER_CHOICES = ("auto", "inotify")

TIMEOUT_ENV = "DIRTY_TRACKER_TIMEOUT"


@dataclass
class TrackerConfig:
    """
    Configuration options for a dirty tracker.

    Attributes:
        observer: Watchdog observer backend, "auto" or "inotify"
        recursive: Whether to watch subdirectories of the root
        marker_prefix: File name prefix of the drain marker
        marker_suffix: File name suffix of the drain marker
        max_pending_events: Bound on queued events; 0 means unbounded
        liveness_interval: Seconds between observer liveness checks while waiting
        stop_timeout: Seconds to wait for the observer thread on close
        default_timeout: Drain timeout in seconds used when a query passes none
    """
    observer: str = "auto"
    recursive: bool = True
    marker_prefix: str = ".dirty-tracker-"
    marker_suffix: str = ".marker"
    max_pending_events: int = 16384
    liveness_interval: float = 0.5
    stop_timeout: float = 5.0
    default_timeout: Optional[Union[float, str]] = None

    def __post_init__(self):
        if self.observer not in OBSERVER_CHOICES:
            raise ValueError(
                f"observer must be one of {', '.join(OBSERVER_CHOICES)}: {self.observer!r}"
            )
        if isinstance(self.default_timeout, str):
            self.default_timeout = _parse_timeout(self.default_timeout, "default_timeout")
        if self.default_timeout is not None and self.default_timeout < 0:
            raise ValueError(f"default_timeout must not be negative: {self.default_timeout}")
        if self.max_pending_events < 0:
            raise ValueError(f"max_pending_events must not be negative: {self.max_pending_events}")
        if self.liveness_interval <= 0:
            raise ValueError(f"liveness_interval must be positive: {self.liveness_interval}")
        if not self.marker_prefix or os.sep in self.marker_prefix:
            raise ValueError(f"invalid marker_prefix: {self.marker_prefix!r}")
        # Fail at construction rather than on every query.
        self.get_default_timeout()

    def get_default_timeout(self) -> Optional[float]:
        """
        Get the drain timeout from config or environment.

        Raises:
            ValueError: If the environment variable is not a non-negative number
        """
        if self.default_timeout is not None:
            return self.default_timeout
        value = os.environ.get(TIMEOUT_ENV)
        if not value:
            return None
        timeout = _parse_timeout(value, TIMEOUT_ENV)
        if timeout < 0:
            raise ValueError(f"{TIMEOUT_ENV} must not be negative: {value!r}")
        return timeout


def _parse_timeout(value: str, name: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds: {value!r}") from None
