"""Process-local counters served at ``/api/metrics``.

Outcome counters are keyed by name. Every error response is also counted
under ``rejected.<stage>`` so a spike can be traced to the guard stage that
produced it.
"""

from collections import Counter
from threading import Lock
from typing import Dict

SUBSCRIPTIONS = "subscriptions"
HONEYPOT_HITS = "honeypot_hits"
RATE_LIMITED = "rate_limited"
CSRF_REJECTIONS = "csrf_rejections"
UPSTREAM_FAILURES = "upstream_failures"

REJECTION_PREFIX = "rejected."

_counts: Counter = Counter()
_lock = Lock()


def record(name: str, amount: int = 1) -> None:
    with _lock:
        _counts[name] += amount


def record_rejection(stage: str) -> None:
    record(f"{REJECTION_PREFIX}{stage}")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_counts)


def reset() -> None:
    with _lock:
        _counts.clear()
