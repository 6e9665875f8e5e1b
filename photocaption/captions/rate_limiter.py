"""
Purpose:
- Client-side throttle in front of the paid captioning API.
- Two rules: minimum spacing between requests, and a cap per rolling window.

Notes:
- The counter resets lazily: once a full window has passed since the last
  recorded request, the next check starts from zero. No background timer.
"""

from __future__ import annotations
import logging
import time
from typing import Callable, Optional
from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

SPACING_MESSAGE = "Please wait a moment before generating another caption"
QUOTA_MESSAGE = "Rate limit reached. Please wait a minute before trying again"

class RateLimiter:
    def __init__(
        self,
        min_interval: float = 1.0,
        max_requests: int = 3,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._last_request_at: Optional[float] = None
        self._count = 0

    @property
    def request_count(self) -> int:
        return self._count

    @property
    def last_request_at(self) -> Optional[float]:
        return self._last_request_at

    def check_and_record(self) -> None:
        """
        Raise RateLimitExceeded if a request now would break spacing or quota;
        otherwise record it.
        """
        now = self._clock()

        if self._last_request_at is not None:
            since_last = now - self._last_request_at

            if since_last < self.min_interval:
                logger.info("rate limit: %.3fs since last request (min %.1fs)", since_last, self.min_interval)
                raise RateLimitExceeded(SPACING_MESSAGE, reason="spacing",
                                        retry_after=self.min_interval - since_last)

            if since_last >= self.window:
                self._count = 0
            elif self._count >= self.max_requests:
                logger.info("rate limit: %d requests inside %.0fs window", self._count, self.window)
                raise RateLimitExceeded(QUOTA_MESSAGE, reason="quota",
                                        retry_after=self.window - since_last)

        self._last_request_at = now
        self._count += 1

    def reset(self) -> None:
        self._last_request_at = None
        self._count = 0
