import os
import random
from collections.abc import Callable, Generator
from typing import Any

import pytest

# Keep pytest output high-signal by disabling outbound Sentry capture in tests.
os.environ["SENTRY_DSN"] = ""

from subscribe_api.api import subscribe as subscribe_api
from subscribe_api.core import metrics
from subscribe_api.core.config import Settings
from subscribe_api.core.rate_limit import InMemoryRateLimiter
from subscribe_api.guard import SubscriptionGuard
from subscribe_api.services.convertkit import ProviderResult


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingProvider:
    """Stands in for ConvertKit and remembers every email it was asked to subscribe."""

    def __init__(self, *, accepted: bool = True, error: BaseException | None = None) -> None:
        self.accepted = accepted
        self.error = error
        self.calls: list[str] = []

    async def subscribe(self, email: str) -> ProviderResult:
        self.calls.append(email)
        if self.error is not None:
            raise self.error
        payload: dict[str, Any] = {"subscription": {"id": 1}} if self.accepted else {"error": "Not Found"}
        return ProviderResult(accepted=self.accepted, status_code=200 if self.accepted else 404, payload=payload)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(scope="module")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_process_state() -> Generator[None, None, None]:
    metrics.reset()
    subscribe_api.reset_subscription_guard()
    yield
    metrics.reset()
    subscribe_api.reset_subscription_guard()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def recorded_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_guard(
    clock: FakeClock, provider: RecordingProvider, recorded_sleep: RecordingSleep
) -> Callable[..., SubscriptionGuard]:
    def factory(**overrides: Any) -> SubscriptionGuard:
        guard_provider = overrides.pop("provider", provider)
        config = Settings(convertkit_api_key="ck-test-key", **overrides)
        limiter = InMemoryRateLimiter(
            config.rate_limit_max_requests, config.rate_limit_window_seconds, clock=clock
        )
        return SubscriptionGuard(
            config,
            rate_limiter=limiter,
            provider=guard_provider,
            sleep=recorded_sleep,
            rng=random.Random(7),
        )

    return factory
