"""
Purpose:
- Retry a remote call while the provider reports throttling (HTTP 429).
- Deterministic exponential backoff: base * 2**(n-1), capped; no jitter.
- Anything that is not RemoteThrottled propagates on the first failure.

Notes:
- tenacity drives the attempts. It does not wait after the last one, so the
  final backoff is slept here before RetriesExhausted is raised.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, List, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import RemoteThrottled, RetriesExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 5,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 32000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._sleep = sleep
        # delays (ms) waited during the most recent execute()
        self.delays: List[int] = []

    def delay_for(self, retry: int) -> int:
        """Backoff in ms before retry number `retry` (1-indexed)."""
        return min(self.base_delay_ms * 2 ** (retry - 1), self.max_delay_ms)

    def _record_wait(self, state: RetryCallState) -> None:
        wait_ms = round(state.next_action.sleep * 1000)
        logger.warning(
            "Rate limit hit. Waiting %dms before retry %d/%d",
            wait_ms, state.attempt_number, self.max_attempts,
        )
        self.delays.append(wait_ms)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        self.delays = []
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.base_delay_ms / 1000.0,
                max=self.max_delay_ms / 1000.0,
            ),
            retry=retry_if_exception_type(RemoteThrottled),
            sleep=self._sleep,
            before_sleep=self._record_wait,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await operation()
        except RetryError as e:
            last = e.last_attempt.exception()
            wait_ms = self.delay_for(self.max_attempts)
            logger.warning(
                "Rate limit hit. Waiting %dms after final attempt %d/%d",
                wait_ms, self.max_attempts, self.max_attempts,
            )
            self.delays.append(wait_ms)
            await self._sleep(wait_ms / 1000.0)
            raise RetriesExhausted(attempts=self.max_attempts) from last
