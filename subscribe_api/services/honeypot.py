from __future__ import annotations

import random
from typing import Any, Awaitable, Callable

import anyio

Sleep = Callable[[float], Awaitable[None]]

_rng = random.SystemRandom()


def is_triggered(value: Any) -> bool:
    """A populated honeypot field marks the submission as automated."""
    if value is None:
        return False
    return bool(str(value).strip())


def pick_delay(min_seconds: float, max_seconds: float, *, rng: random.Random | None = None) -> float:
    low, high = sorted((float(min_seconds), float(max_seconds)))
    return (rng or _rng).uniform(low, high)


async def stall(
    min_seconds: float,
    max_seconds: float,
    *,
    sleep: Sleep = anyio.sleep,
    rng: random.Random | None = None,
) -> float:
    """Wait a uniformly random delay so the bot branch does not answer instantly."""
    delay = pick_delay(min_seconds, max_seconds, rng=rng)
    await sleep(delay)
    return delay
