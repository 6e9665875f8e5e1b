from __future__ import annotations

import pytest

from photocaption.captions.cache import MemoryStore, ResponseCache
from photocaption.captions.orchestrator import CaptionOrchestrator
from photocaption.captions.rate_limiter import RateLimiter
from photocaption.captions.retry import RetryPolicy
from tests.fakes import FakeClock, FakeService, RecordingSleep


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def orchestrator(service, store, clock, sleep) -> CaptionOrchestrator:
    return CaptionOrchestrator(
        service=service,
        cache=ResponseCache(store),
        limiter=RateLimiter(clock=clock),
        retry=RetryPolicy(sleep=sleep),
    )
