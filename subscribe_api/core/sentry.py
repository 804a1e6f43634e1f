from __future__ import annotations

import logging
from typing import Any

from subscribe_api.core.config import Settings, settings
from subscribe_api.core.redaction import redact_payload

# Headers that carry the CSRF pair or client addresses.
_SCRUBBED_HEADERS = {"cookie", "x-csrf-token", "x-forwarded-for", "x-real-ip"}


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Strip subscriber PII and the CSRF pair from an event before it is sent."""
    request = event.get("request")
    if isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {k: v for k, v in headers.items() if k.lower() not in _SCRUBBED_HEADERS}
        if "data" in request:
            request["data"] = redact_payload(request["data"])
    extra = event.get("extra")
    if isinstance(extra, dict):
        event["extra"] = redact_payload(extra)
    return event


def init_sentry(config: Settings = settings) -> bool:
    if not config.sentry_dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations import Integration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations: list[Integration] = [FastApiIntegration()]
    if config.sentry_enable_logs:
        event_level = getattr(logging, str(config.sentry_log_level or "error").upper(), logging.ERROR)
        integrations.append(LoggingIntegration(level=event_level, event_level=event_level))

    sentry_sdk.init(
        dsn=config.sentry_dsn,
        environment=config.environment,
        release=config.app_version,
        traces_sample_rate=config.sentry_traces_sample_rate,
        integrations=integrations,
        before_send=scrub_event,
        send_default_pii=False,
    )
    return True
