from __future__ import annotations

import logging

from subscribe_api.core.config import settings

logger = logging.getLogger(__name__)


def _looks_like_localhost(url: str | None) -> bool:
    value = (url or "").strip().lower()
    if not value:
        return False
    return "localhost" in value or "127.0.0.1" in value


def _append_if(problems: list[str], *, condition: bool, message: str) -> None:
    if condition:
        problems.append(message)


def _validate_origin_settings(problems: list[str]) -> None:
    _append_if(
        problems,
        condition=not settings.allowed_origins,
        message="ALLOWED_ORIGINS must list at least one public site origin in production.",
    )
    for origin in settings.allowed_origins:
        _append_if(
            problems,
            condition=not origin.startswith("https://"),
            message=f"ALLOWED_ORIGINS entry {origin!r} must use https in production.",
        )
        _append_if(
            problems,
            condition=_looks_like_localhost(origin),
            message=f"ALLOWED_ORIGINS entry {origin!r} must not point at localhost in production.",
        )


def _validate_guard_settings(problems: list[str]) -> None:
    _append_if(
        problems,
        condition=settings.rate_limit_max_requests <= 0 or settings.rate_limit_window_seconds <= 0,
        message="RATE_LIMIT_MAX_REQUESTS and RATE_LIMIT_WINDOW_SECONDS must be positive.",
    )
    _append_if(
        problems,
        condition=settings.honeypot_delay_min_seconds > settings.honeypot_delay_max_seconds,
        message="HONEYPOT_DELAY_MIN_SECONDS must not exceed HONEYPOT_DELAY_MAX_SECONDS.",
    )
    _append_if(
        problems,
        condition=not bool(settings.secure_cookies),
        message="SECURE_COOKIES must be enabled in production.",
    )


def _warn_on_provider_settings() -> None:
    # Missing credentials fail per request with a generic 500, not at boot.
    if not (settings.convertkit_api_key or "").strip():
        logger.warning("CONVERTKIT_API_KEY is not configured; subscriptions will fail until it is set.")
    if not (settings.convertkit_form_id or "").strip():
        logger.warning("CONVERTKIT_FORM_ID is not configured; subscriptions will fail until it is set.")


def validate_production_settings() -> None:
    """
    Fail fast on insecure settings when running in production.

    Provider credentials are only warned about: the endpoint reports them as a
    temporary outage per request.
    """
    if not settings.is_production:
        return

    problems: list[str] = []
    _validate_origin_settings(problems)
    _validate_guard_settings(problems)
    _warn_on_provider_settings()

    if problems:
        raise RuntimeError("Production configuration checks failed:\n- " + "\n- ".join(problems))
