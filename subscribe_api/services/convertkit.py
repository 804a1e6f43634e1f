from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from subscribe_api.core.config import Settings
from subscribe_api.core.errors import UpstreamConfigurationError, UpstreamUnavailableError
from subscribe_api.core.redaction import mask_email, redact_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResult:
    accepted: bool
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)


class SubscriptionProvider(Protocol):
    async def subscribe(self, email: str) -> ProviderResult: ...


def _require_api_key(config: Settings) -> str:
    api_key = (config.convertkit_api_key or "").strip()
    if api_key:
        return api_key
    logger.error("CONVERTKIT_API_KEY not configured")
    raise UpstreamConfigurationError("provider api key missing")


def _require_form_id(config: Settings) -> str:
    form_id = (config.convertkit_form_id or "").strip()
    if form_id:
        return form_id
    logger.error("CONVERTKIT_FORM_ID not configured")
    raise UpstreamConfigurationError("provider form id missing")


def _parse_response(resp: httpx.Response) -> dict[str, Any]:
    if not resp.content:
        return {}
    try:
        parsed = resp.json()
    except ValueError as exc:
        logger.error("convertkit_unreadable_response", extra={"status_code": resp.status_code})
        raise UpstreamUnavailableError("provider returned non-JSON body") from exc
    return parsed if isinstance(parsed, dict) else {}


class ConvertKitProvider:
    """Forms subscribe endpoint of the ConvertKit v3 API.

    One attempt per call; timeouts and transport errors surface as
    ``UpstreamUnavailableError`` and are never retried here.
    """

    def __init__(self, config: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport

    def subscribe_url(self, form_id: str) -> str:
        base = self.config.convertkit_api_base.rstrip("/")
        return f"{base}/forms/{form_id}/subscribe"

    async def subscribe(self, email: str) -> ProviderResult:
        api_key = _require_api_key(self.config)
        form_id = _require_form_id(self.config)
        try:
            async with httpx.AsyncClient(
                timeout=self.config.provider_timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.post(self.subscribe_url(form_id), json={"api_key": api_key, "email": email})
        except httpx.HTTPError as exc:
            logger.error(
                "convertkit_request_failed",
                extra={"error": type(exc).__name__, "email": mask_email(email)},
            )
            raise UpstreamUnavailableError("provider request failed") from exc

        data = _parse_response(resp)
        accepted = resp.is_success and bool(data.get("subscription"))
        if not accepted:
            logger.error(
                "convertkit_rejected",
                extra={
                    "status_code": resp.status_code,
                    "provider_payload": redact_payload(data),
                    "email": mask_email(email),
                },
            )
        return ProviderResult(accepted=accepted, status_code=resp.status_code, payload=data)
