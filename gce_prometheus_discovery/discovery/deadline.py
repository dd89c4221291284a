"""Per-cycle time budget shared by every call made during one discovery cycle."""

from __future__ import annotations

import time
from typing import Callable

from ..exceptions import DiscoveryTimeout


class Deadline:
    """A fixed point in monotonic time after which the current cycle is abandoned."""

    def __init__(self, timeout: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.timeout = timeout
        self._expires_at = clock() + timeout

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self, what: str = "discovery") -> None:
        """Raise DiscoveryTimeout if the deadline has passed."""
        if self.expired:
            raise DiscoveryTimeout(f"{what} exceeded timeout of {self.timeout}s")
