from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fastapi import status

from subscribe_api.core import metrics
from subscribe_api.core.csrf import validate_double_submit
from subscribe_api.core.errors import (
    AuthenticityError,
    InvalidEmailError,
    MalformedRequestError,
    MethodNotAllowedError,
    MissingEmailError,
    PayloadTooLargeError,
    RateLimitError,
    SubscriptionError,
    UpstreamFailureError,
    UpstreamUnavailableError,
)
from subscribe_api.core.rate_limit import client_identifier
from subscribe_api.core.redaction import mask_email
from subscribe_api.core.validation import is_valid_email, normalize_email
from subscribe_api.guard.context import GuardContext, GuardResponse
from subscribe_api.services import honeypot

if TYPE_CHECKING:
    from subscribe_api.guard.pipeline import SubscriptionGuard

Stage = Callable[["SubscriptionGuard", GuardContext], Awaitable[GuardResponse | None]]

SUCCESS_MESSAGE = "Subscribed successfully"
ALLOWED_METHODS = "POST, OPTIONS"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"

logger = logging.getLogger(__name__)


def success_response(ctx: GuardContext) -> GuardResponse:
    return GuardResponse(
        status_code=status.HTTP_200_OK,
        body={"success": True, "message": SUCCESS_MESSAGE},
        headers=dict(ctx.response_headers),
    )


async def cors_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    config = guard.settings
    origin = ctx.request.headers.get("origin")
    if origin and origin in config.effective_origins():
        ctx.response_headers["Access-Control-Allow-Origin"] = origin
        ctx.response_headers["Access-Control-Allow-Credentials"] = "true"
    ctx.response_headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    ctx.response_headers["Access-Control-Allow-Headers"] = f"Content-Type, {config.csrf_header_name}"
    ctx.response_headers["Access-Control-Max-Age"] = str(config.cors_max_age_seconds)
    ctx.response_headers["Vary"] = "Origin"

    if ctx.request.method == "OPTIONS":
        return GuardResponse(status_code=status.HTTP_200_OK, body=None, headers=dict(ctx.response_headers))
    return None


async def method_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    if ctx.request.method != "POST":
        raise MethodNotAllowedError(f"method {ctx.request.method} rejected", headers={"Allow": ALLOWED_METHODS})
    return None


async def csrf_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    config = guard.settings
    if not config.is_production:
        return None
    cookie_token = ctx.request.cookies.get(config.csrf_cookie_name)
    header_token = ctx.request.headers.get(config.csrf_header_name.lower())
    if not validate_double_submit(cookie_token, header_token, min_length=config.csrf_min_length):
        metrics.record(metrics.CSRF_REJECTIONS)
        raise AuthenticityError("csrf double-submit check failed")
    return None


async def rate_limit_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    ctx.identifier = client_identifier(ctx.request.headers)
    decision = await guard.rate_limiter.check_and_increment(ctx.identifier)
    ctx.response_headers[RATE_LIMIT_REMAINING_HEADER] = str(decision.remaining)
    if not decision.allowed:
        metrics.record(metrics.RATE_LIMITED)
        raise RateLimitError(
            f"rate limit exceeded for {ctx.identifier}",
            headers={"Retry-After": str(decision.retry_after)},
        )
    return None


def _check_raw_size(raw_size: int, max_bytes: int) -> None:
    # Raw bodies over the cap are never decoded or parsed.
    if raw_size > max_bytes:
        raise PayloadTooLargeError(f"body of {raw_size} bytes")


def _decode_body(body: Any, max_bytes: int) -> tuple[dict[str, Any], int | None]:
    if body is None:
        return {}, None
    if isinstance(body, dict):
        return body, None
    if isinstance(body, (bytes, bytearray)):
        raw_size = len(body)
        _check_raw_size(raw_size, max_bytes)
        try:
            text = bytes(body).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRequestError("body is not utf-8") from exc
    elif isinstance(body, str):
        text = body
        raw_size = len(body.encode("utf-8"))
        _check_raw_size(raw_size, max_bytes)
    else:
        raise MalformedRequestError(f"unsupported body type {type(body).__name__}")

    if not text.strip():
        return {}, raw_size
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise MalformedRequestError("body is not valid JSON") from exc
    if not isinstance(parsed, dict):
        raise MalformedRequestError("body is not a JSON object")
    return parsed, raw_size


async def parse_body_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    payload, raw_size = _decode_body(ctx.request.body, guard.settings.max_body_bytes)
    ctx.payload = payload
    if raw_size is None:
        try:
            serialized = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError, RecursionError) as exc:
            raise MalformedRequestError("body is not JSON serializable") from exc
        raw_size = len(serialized.encode("utf-8"))
    ctx.body_size = raw_size
    return None


async def body_size_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    if ctx.body_size > guard.settings.max_body_bytes:
        raise PayloadTooLargeError(f"body of {ctx.body_size} bytes")
    return None


async def validate_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    raw_email = ctx.payload.get("email")
    if raw_email is None or (isinstance(raw_email, str) and not raw_email.strip()):
        raise MissingEmailError("email missing")
    email = normalize_email(raw_email)
    if not is_valid_email(email, max_length=guard.settings.email_max_length):
        raise InvalidEmailError("email failed validation")
    ctx.email = email
    ctx.honeypot_value = ctx.payload.get(guard.settings.honeypot_field)
    return None


async def honeypot_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    if not honeypot.is_triggered(ctx.honeypot_value):
        return None
    metrics.record(metrics.HONEYPOT_HITS)
    logger.info("honeypot_triggered", extra={"client": ctx.identifier})
    await honeypot.stall(
        guard.settings.honeypot_delay_min_seconds,
        guard.settings.honeypot_delay_max_seconds,
        sleep=guard.sleep,
        rng=guard.rng,
    )
    return success_response(ctx)


async def subscribe_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    try:
        ctx.provider_result = await guard.provider.subscribe(ctx.email)
    except SubscriptionError:
        metrics.record(metrics.UPSTREAM_FAILURES)
        raise
    except Exception as exc:
        metrics.record(metrics.UPSTREAM_FAILURES)
        logger.exception("subscribe_endpoint_error", extra={"email": mask_email(ctx.email)})
        raise UpstreamUnavailableError("unexpected provider error") from exc
    return None


async def translate_stage(guard: SubscriptionGuard, ctx: GuardContext) -> GuardResponse | None:
    result = ctx.provider_result
    if result is None or not result.accepted:
        metrics.record(metrics.UPSTREAM_FAILURES)
        raise UpstreamFailureError("provider rejected subscription")
    metrics.record(metrics.SUBSCRIPTIONS)
    return success_response(ctx)


STAGES: tuple[tuple[str, Stage], ...] = (
    ("cors", cors_stage),
    ("method", method_stage),
    ("csrf", csrf_stage),
    ("rate_limit", rate_limit_stage),
    ("parse_body", parse_body_stage),
    ("body_size", body_size_stage),
    ("validate", validate_stage),
    ("honeypot", honeypot_stage),
    ("subscribe", subscribe_stage),
    ("translate", translate_stage),
)
