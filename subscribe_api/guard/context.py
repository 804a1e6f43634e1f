from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from subscribe_api.core.rate_limit import UNKNOWN_CLIENT
from subscribe_api.services.convertkit import ProviderResult


@dataclass(frozen=True)
class GuardRequest:
    """Framework-independent view of an incoming subscribe request.

    ``headers`` are stored with lower-cased names. ``body`` may be a decoded
    mapping, a JSON string, raw bytes, or ``None``.
    """

    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    @classmethod
    def build(
        cls,
        method: str,
        *,
        headers: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> "GuardRequest":
        normalized = {str(k).lower(): str(v) for k, v in (headers or {}).items()}
        return cls(method=(method or "").upper(), headers=normalized, cookies=dict(cookies or {}), body=body)


@dataclass
class GuardResponse:
    status_code: int
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    # Filled in by the pipeline: the stage that answered and the rate-limit key.
    stage: str | None = None
    client: str | None = None


@dataclass
class GuardContext:
    """Mutable state threaded through the stages of one request."""

    request: GuardRequest
    response_headers: dict[str, str] = field(default_factory=dict)
    identifier: str = UNKNOWN_CLIENT
    payload: dict[str, Any] = field(default_factory=dict)
    body_size: int = 0
    email: str = ""
    honeypot_value: Any = None
    provider_result: ProviderResult | None = None
