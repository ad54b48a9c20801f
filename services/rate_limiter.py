from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from config.settings import Settings, get_settings


class RateLimiter:
    """Process-wide minimum spacing between backend dispatches.

    Each caller reserves the next free slot under the lock and sleeps outside
    it, so concurrent runs queue up at ``min_spacing`` intervals instead of
    waking together. Clock and sleep are injectable for tests.
    """

    def __init__(
        self,
        min_spacing_ms: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_spacing_s = max(0, min_spacing_ms) / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_slot: Optional[float] = None

    def reserve(self) -> float:
        """Claim the next dispatch slot; returns the seconds to wait before using it."""
        with self._lock:
            now = self._clock()
            slot = now
            if self._last_slot is not None:
                slot = max(now, self._last_slot + self.min_spacing_s)
            self._last_slot = slot
            return slot - now

    def acquire(self, label: str = "") -> float:
        """Block until this caller may dispatch. Returns the time waited in seconds."""
        wait_s = self.reserve()
        if wait_s > 0:
            logging.info(
                f"Rate limiting: waiting {wait_s * 1000:.0f}ms before next request",
                extra={"step": "rate_limit", "provider": label or "-"},
            )
            self._sleep(wait_s)
        return wait_s


_SHARED: Optional[RateLimiter] = None
_SHARED_LOCK = threading.Lock()


def get_rate_limiter(settings: Optional[Settings] = None) -> RateLimiter:
    """The one limiter shared by every orchestrator in this process."""
    global _SHARED
    with _SHARED_LOCK:
        if _SHARED is None:
            settings = settings or get_settings()
            _SHARED = RateLimiter(settings.min_request_spacing_ms)
        return _SHARED
