"""Inter-page pacing and the traversal deadline."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

from ghcommitters.errors import TraversalCancelled

logger = logging.getLogger("ghcommitters.pacing")


class PagePacer(Protocol):
    def wait_between_pages(self) -> None:
        """Block before the next page request at the same level."""


class FixedDelay:
    """Static delay between consecutive page fetches, not adaptive."""

    def __init__(self, delay_s: float, sleep: Callable[[float], None] = time.sleep) -> None:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self.delay_s = delay_s
        self._sleep = sleep

    def wait_between_pages(self) -> None:
        if self.delay_s:
            self._sleep(self.delay_s)


class NoDelay:
    def wait_between_pages(self) -> None:
        return None


class Deadline:
    """Wall-clock budget for one traversal, checked before every fetch.

    ``timeout_s=None`` never expires.
    """

    def __init__(
        self,
        timeout_s: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout_s = timeout_s
        self._clock = clock
        self._expires_at = None if timeout_s is None else clock() + timeout_s

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self) -> None:
        if self.expired:
            logger.warning("Traversal deadline of %.1fs reached", self.timeout_s)
            raise TraversalCancelled(
                f"Traversal stopped after exceeding its {self.timeout_s:g}s deadline"
            )
